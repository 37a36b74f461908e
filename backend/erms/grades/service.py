"""Grade settings, manual term scores, exam scores and grade views."""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from erms.classes.service import ClassService
from erms.models import (
    ClassEnrollment, ClassMaterial, EnrollmentStatus, GradeComputationSettings, GradeManualScore,
    GroupClass, Student, StudentExamScore, StudentSubmission, Teacher, Term,
)
from .calculator import GradeWeights, compute_average, final_grade, percentage, term_grade
from .schemas import (
    BulkError, BulkResult, ClassGradesResponse, ExamScores, ExamScoreUpsert, GradedWork,
    GradeSettingsResponse, GradeSettingsUpdate, ManualScoreUpsert, StudentClassGrade,
    StudentClassGradeDetail, StudentGradeRow, TermScores,
)

logger = logging.getLogger(__name__)

TERMS = (Term.prelim, Term.midterm, Term.finals)
EXAM_FIELDS = (
    ("prelim_score", "max_prelim_score"),
    ("midterm_score", "max_midterm_score"),
    ("finals_score", "max_finals_score"),
)


def settings_view(class_id: str, settings: Optional[GradeComputationSettings]) -> GradeSettingsResponse:
    weights = GradeWeights.from_settings(settings)
    return GradeSettingsResponse(
        class_id=class_id,
        affective_percentage=weights.affective,
        summative_percentage=weights.summative,
        formative_percentage=weights.formative,
    )


def exam_view(exam: Optional[StudentExamScore]) -> ExamScores:
    if exam is None:
        return ExamScores()
    return ExamScores(
        prelim_score=exam.prelim_score,
        midterm_score=exam.midterm_score,
        finals_score=exam.finals_score,
        max_prelim_score=exam.max_prelim_score,
        max_midterm_score=exam.max_midterm_score,
        max_finals_score=exam.max_finals_score,
        portfolio_score=exam.portfolio_score,
    )


def term_breakdown(manual: dict, weights: GradeWeights) -> tuple[dict, Optional[float]]:
    """Per-term scores and grades plus the final grade for one student.

    ``manual`` maps a Term to its GradeManualScore row; missing terms count
    as no scores entered.
    """
    terms = {}
    for term in TERMS:
        row = manual.get(term)
        affective = row.affective_score if row else None
        summative = row.summative_score if row else None
        formative = row.formative_score if row else None
        terms[term] = TermScores(
            affective_score=affective,
            summative_score=summative,
            formative_score=formative,
            term_grade=term_grade(affective, summative, formative, weights),
        )
    final = final_grade(*(terms[t].term_grade for t in TERMS))
    return terms, final


class GradeService:
    def __init__(self, db: Session):
        self.db = db
        self.classes = ClassService(db)

    def _settings(self, class_id: str) -> Optional[GradeComputationSettings]:
        return self.db.query(GradeComputationSettings).filter(
            GradeComputationSettings.class_id == class_id
        ).first()

    def _manual_scores(self, class_id: str, student_id: Optional[str] = None) -> dict:
        """Manual scores keyed by (student_id, term)."""
        query = self.db.query(GradeManualScore).filter(GradeManualScore.class_id == class_id)
        if student_id:
            query = query.filter(GradeManualScore.student_id == student_id)
        return {(row.student_id, row.term): row for row in query}

    def _exam_scores(self, class_id: str, student_id: Optional[str] = None) -> dict:
        query = self.db.query(StudentExamScore).filter(StudentExamScore.class_id == class_id)
        if student_id:
            query = query.filter(StudentExamScore.student_id == student_id)
        return {row.student_id: row for row in query}

    def _graded_submissions(self, class_id: str, student_id: Optional[str] = None) -> list[StudentSubmission]:
        query = (
            self.db.query(StudentSubmission)
            .join(ClassMaterial, ClassMaterial.id == StudentSubmission.material_id)
            .filter(ClassMaterial.class_id == class_id, StudentSubmission.is_graded.is_(True))
        )
        if student_id:
            query = query.filter(StudentSubmission.student_id == student_id)
        return query.order_by(StudentSubmission.graded_at.desc()).all()

    def _require_member(self, class_id: str, student_id: str) -> None:
        if not self.classes.is_approved_member(student_id, class_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student is not enrolled in this class")

    # Teacher side

    def class_grades(self, teacher: Teacher, class_id: str) -> ClassGradesResponse:
        group_class = self.classes.get_owned_class(teacher, class_id)
        settings = self._settings(class_id)
        weights = GradeWeights.from_settings(settings)
        manual = self._manual_scores(class_id)
        exams = self._exam_scores(class_id)

        by_student: dict[str, list] = {}
        for submission in self._graded_submissions(class_id):
            by_student.setdefault(submission.student_id, []).append(submission)

        enrollments = (
            self.db.query(ClassEnrollment)
            .join(Student, Student.id == ClassEnrollment.student_id)
            .filter(
                ClassEnrollment.class_id == class_id,
                ClassEnrollment.status == EnrollmentStatus.approved,
            )
            .order_by(Student.student_name)
            .all()
        )

        rows = []
        for enrollment in enrollments:
            student = enrollment.student
            terms, final = term_breakdown({term: manual.get((student.id, term)) for term in TERMS}, weights)
            rows.append(StudentGradeRow(
                student_id=student.id,
                student_number=student.student_number,
                student_name=student.student_name,
                terms=terms,
                final_grade=final,
                exam_scores=exam_view(exams.get(student.id)),
                submission_average=compute_average(by_student.get(student.id, [])),
            ))

        return ClassGradesResponse(
            class_id=group_class.id,
            class_name=group_class.class_name,
            settings=settings_view(class_id, settings),
            students=rows,
        )

    def update_settings(self, teacher: Teacher, class_id: str, data: GradeSettingsUpdate) -> GradeSettingsResponse:
        self.classes.get_owned_class(teacher, class_id)
        weights = GradeWeights(
            affective=data.affective_percentage,
            summative=data.summative_percentage,
            formative=data.formative_percentage,
        )
        if not weights.is_valid():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Percentages must total 100")

        settings = self._settings(class_id)
        if settings is None:
            settings = GradeComputationSettings(class_id=class_id)
            self.db.add(settings)
        settings.affective_percentage = weights.affective
        settings.summative_percentage = weights.summative
        settings.formative_percentage = weights.formative
        self.db.commit()
        self.db.refresh(settings)
        return settings_view(class_id, settings)

    def _upsert_manual(self, class_id: str, data: ManualScoreUpsert) -> GradeManualScore:
        self._require_member(class_id, data.student_id)
        row = self.db.query(GradeManualScore).filter(
            GradeManualScore.class_id == class_id,
            GradeManualScore.student_id == data.student_id,
            GradeManualScore.term == data.term,
        ).first()
        if row is None:
            row = GradeManualScore(class_id=class_id, student_id=data.student_id, term=data.term)
            self.db.add(row)
        # Components left out of the request keep their stored value
        for field, value in data.model_dump(exclude_unset=True, exclude={"student_id", "term"}).items():
            if field == "details" and value is None:
                continue
            setattr(row, field, value)
        self.db.flush()
        return row

    def save_manual_score(self, teacher: Teacher, class_id: str, data: ManualScoreUpsert) -> GradeManualScore:
        self.classes.get_owned_class(teacher, class_id)
        row = self._upsert_manual(class_id, data)
        self.db.commit()
        self.db.refresh(row)
        return row

    def save_manual_scores(self, teacher: Teacher, class_id: str, entries: list[ManualScoreUpsert]) -> BulkResult:
        """Save every valid entry; failures are reported per student."""
        self.classes.get_owned_class(teacher, class_id)
        return self._bulk(entries, lambda entry: self._upsert_manual(class_id, entry))

    @staticmethod
    def _check_exam_ranges(data: ExamScoreUpsert) -> None:
        for score_field, max_field in EXAM_FIELDS:
            score = getattr(data, score_field)
            if score is not None and score > getattr(data, max_field):
                label = score_field.split("_")[0].capitalize()
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{label} score cannot exceed its maximum",
                )

    def _upsert_exam(self, teacher: Teacher, class_id: str, data: ExamScoreUpsert) -> StudentExamScore:
        self._check_exam_ranges(data)
        self._require_member(class_id, data.student_id)
        row = self.db.query(StudentExamScore).filter(
            StudentExamScore.class_id == class_id,
            StudentExamScore.student_id == data.student_id,
        ).first()
        if row is None:
            row = StudentExamScore(class_id=class_id, student_id=data.student_id)
            self.db.add(row)
        sent = data.model_fields_set
        for score_field, max_field in EXAM_FIELDS:
            if score_field in sent:
                setattr(row, score_field, getattr(data, score_field))
                setattr(row, max_field, getattr(data, max_field))
        if "portfolio_score" in sent:
            row.portfolio_score = data.portfolio_score
        row.graded_by = teacher.id
        self.db.flush()
        return row

    def save_exam_score(self, teacher: Teacher, class_id: str, data: ExamScoreUpsert) -> StudentExamScore:
        self.classes.get_owned_class(teacher, class_id)
        row = self._upsert_exam(teacher, class_id, data)
        self.db.commit()
        self.db.refresh(row)
        return row

    def save_exam_scores(self, teacher: Teacher, class_id: str, entries: list[ExamScoreUpsert]) -> BulkResult:
        self.classes.get_owned_class(teacher, class_id)
        return self._bulk(entries, lambda entry: self._upsert_exam(teacher, class_id, entry))

    def _bulk(self, entries, save) -> BulkResult:
        saved = 0
        errors = []
        # Each save checks its entry before adding anything to the session.
        for entry in entries:
            try:
                save(entry)
                saved += 1
            except HTTPException as e:
                logger.info(f"Skipped scores for student {entry.student_id}: {e.detail}")
                errors.append(BulkError(student_id=entry.student_id, detail=e.detail))
        self.db.commit()
        return BulkResult(saved=saved, errors=errors)

    # Student side

    def _student_class_grade(self, student: Student, group_class: GroupClass, detail: bool = False):
        settings = self._settings(group_class.id)
        weights = GradeWeights.from_settings(settings)
        manual = {
            term: row for (_, term), row in self._manual_scores(group_class.id, student.id).items()
        }
        terms, final = term_breakdown(manual, weights)
        exam = self._exam_scores(group_class.id, student.id).get(student.id)
        submissions = self._graded_submissions(group_class.id, student.id)

        fields = dict(
            class_id=group_class.id,
            class_name=group_class.class_name,
            subject=group_class.subject,
            teacher_name=group_class.teacher_name,
            average=compute_average(submissions),
            graded_count=len(submissions),
            exam_scores=exam_view(exam),
            terms=terms,
            final_grade=final,
        )
        if not detail:
            return StudentClassGrade(**fields)

        return StudentClassGradeDetail(
            **fields,
            settings=settings_view(group_class.id, settings),
            submissions=[
                GradedWork(
                    submission_id=s.id,
                    material_title=s.material.title,
                    material_type=s.material.material_type,
                    score=s.score,
                    max_score=s.max_score,
                    percentage=percentage(s.score, s.max_score),
                    feedback=s.feedback,
                    graded_at=s.graded_at,
                )
                for s in submissions
            ],
        )

    def student_grades(self, student: Student) -> list[StudentClassGrade]:
        return [
            self._student_class_grade(student, group_class)
            for group_class in self.classes.approved_classes(student)
        ]

    def student_class_grades(self, student: Student, class_id: str) -> StudentClassGradeDetail:
        group_class = self.classes.require_approved(student, class_id)
        return self._student_class_grade(student, group_class, detail=True)
