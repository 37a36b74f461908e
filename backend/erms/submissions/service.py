"""Taking quizzes, handing in assignments and grading the results."""
import logging
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erms.classes.materials import MaterialService
from erms.database import utcnow
from erms.grades.calculator import percentage
from erms.models import (
    ClassEnrollment, ClassMaterial, EnrollmentStatus, GroupClass, Quiz, QuizAttempt, QuizKind,
    QuizProgress, Student, StudentSubmission, SubmissionStatus, Teacher,
)
from .grader import GradingResult, grade_quiz
from .schemas import (
    GradedAnswer, ProgressResponse, RecentSubmission, SubmissionDetail, TeacherDashboard,
    TeacherSubmissionView,
)

logger = logging.getLogger(__name__)

GRADABLE_BY_QUIZ = (QuizKind.quiz, QuizKind.exam)


def stored_answers(submission: StudentSubmission, reveal_key: bool = True) -> list[GradedAnswer]:
    answers = (submission.quiz_answers or {}).get("answers", [])
    graded = [GradedAnswer(**a) for a in answers]
    if not reveal_key:
        for answer in graded:
            answer.correct_answer = None
            answer.is_correct = None
    return graded


class SubmissionService:
    def __init__(self, db: Session):
        self.db = db
        self.materials = MaterialService(db)

    def _existing(self, student: Student, material: ClassMaterial) -> Optional[StudentSubmission]:
        return self.db.query(StudentSubmission).filter(
            StudentSubmission.material_id == material.id,
            StudentSubmission.student_id == student.id,
        ).first()

    def _commit_submission(self, duplicate_detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent submission of the same material
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=duplicate_detail)

    # Student side

    def submit_quiz(
        self, student: Student, material_id: str, answers: dict[str, Any], time_taken: Optional[int] = None
    ) -> tuple[StudentSubmission, GradingResult]:
        material = self.materials.get_material_for_student(student, material_id)
        if material.material_type not in GRADABLE_BY_QUIZ:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This material is not a quiz")
        if self._existing(student, material):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already submitted this quiz")

        result = grade_quiz(material.quiz.questions, answers)
        now = utcnow()
        submission = StudentSubmission(
            material_id=material.id,
            student_id=student.id,
            quiz_answers={"answers": result.answers},
            score=result.score if result.auto_graded else None,
            max_score=result.max_score,
            is_graded=result.auto_graded,
            auto_graded=result.auto_graded,
            status=SubmissionStatus.graded if result.auto_graded else SubmissionStatus.submitted,
            submitted_at=now,
            graded_at=now if result.auto_graded else None,
        )
        submission.attempts.append(QuizAttempt(
            student_id=student.id,
            quiz_id=material.quiz_id,
            answers=answers,
            score=submission.score,
            max_score=result.max_score,
            time_taken=time_taken,
            is_completed=True,
            completed_at=now,
        ))
        self.db.add(submission)
        self.db.query(QuizProgress).filter(
            QuizProgress.student_id == student.id,
            QuizProgress.material_id == material.id,
        ).delete(synchronize_session=False)
        self._commit_submission("You have already submitted this quiz")
        self.db.refresh(submission)
        logger.info(
            f"Student {student.id} submitted material {material.id}: "
            f"{result.score}/{result.max_score} auto_graded={result.auto_graded}"
        )
        return submission, result

    def submit_assignment(
        self, student: Student, material_id: str, response: Optional[str], file_url: Optional[str]
    ) -> StudentSubmission:
        material = self.materials.get_material_for_student(student, material_id)
        if material.material_type != QuizKind.assignment:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This material is not an assignment")
        if not response and not file_url:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please provide a response or upload a file",
            )
        if self._existing(student, material):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You have already submitted this assignment",
            )
        submission = StudentSubmission(
            material_id=material.id,
            student_id=student.id,
            assignment_response=response,
            assignment_file_url=file_url,
            status=SubmissionStatus.submitted,
        )
        self.db.add(submission)
        self._commit_submission("You have already submitted this assignment")
        self.db.refresh(submission)
        return submission

    def get_student_submission(self, student: Student, submission_id: str) -> SubmissionDetail:
        submission = self.db.get(StudentSubmission, submission_id)
        if not submission or submission.student_id != student.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        material = submission.material
        return SubmissionDetail(
            **self._base_fields(submission),
            material_title=material.title,
            material_type=material.material_type,
            class_name=material.group_class.class_name,
            percentage=percentage(submission.score, submission.max_score),
            answers=stored_answers(submission, reveal_key=material.quiz.show_answer_key),
        )

    @staticmethod
    def _base_fields(submission: StudentSubmission) -> dict:
        return dict(
            id=submission.id,
            material_id=submission.material_id,
            student_id=submission.student_id,
            status=submission.status,
            score=submission.score,
            max_score=submission.max_score,
            is_graded=submission.is_graded,
            auto_graded=submission.auto_graded,
            feedback=submission.feedback,
            assignment_response=submission.assignment_response,
            assignment_file_url=submission.assignment_file_url,
            submitted_at=submission.submitted_at,
            graded_at=submission.graded_at,
        )

    # Quiz drafts

    def _progress(self, student: Student, material: ClassMaterial) -> Optional[QuizProgress]:
        return self.db.query(QuizProgress).filter(
            QuizProgress.student_id == student.id,
            QuizProgress.material_id == material.id,
        ).first()

    def get_progress(self, student: Student, material_id: str) -> ProgressResponse:
        material = self.materials.get_material_for_student(student, material_id)
        if self._existing(student, material):
            return ProgressResponse(already_submitted=True)
        progress = self._progress(student, material)
        if not progress:
            return ProgressResponse(already_submitted=False)
        return ProgressResponse(
            already_submitted=False,
            answers=progress.answers or {},
            start_time=progress.start_time,
            updated_at=progress.updated_at,
        )

    def save_progress(self, student: Student, material_id: str, answers: dict, start_time=None) -> ProgressResponse:
        material = self.materials.get_material_for_student(student, material_id)
        if self._existing(student, material):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already submitted this quiz")
        progress = self._progress(student, material)
        if progress is None:
            progress = QuizProgress(
                student_id=student.id,
                material_id=material.id,
                quiz_id=material.quiz_id,
                start_time=start_time or utcnow(),
            )
            self.db.add(progress)
        elif start_time is not None and progress.start_time is None:
            progress.start_time = start_time
        progress.answers = dict(answers)
        progress.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(progress)
        return ProgressResponse(
            already_submitted=False,
            answers=progress.answers,
            start_time=progress.start_time,
            updated_at=progress.updated_at,
        )

    def clear_progress(self, student: Student, material_id: str) -> None:
        material = self.materials.get_material_for_student(student, material_id)
        progress = self._progress(student, material)
        if progress is not None:
            self.db.delete(progress)
            self.db.commit()

    # Teacher side

    def list_material_submissions(self, teacher: Teacher, class_id: str, material_id: str) -> list[TeacherSubmissionView]:
        material = self.materials.get_owned_material(teacher, class_id, material_id)
        rows = (
            self.db.query(StudentSubmission)
            .filter(StudentSubmission.material_id == material.id)
            .order_by(StudentSubmission.submitted_at.desc())
            .all()
        )
        return [self.teacher_view(s) for s in rows]

    def teacher_view(self, submission: StudentSubmission) -> TeacherSubmissionView:
        return TeacherSubmissionView(
            **self._base_fields(submission),
            student_name=submission.student.student_name,
            student_number=submission.student.student_number,
            answers=stored_answers(submission),
        )

    def get_owned_submission(self, teacher: Teacher, submission_id: str) -> StudentSubmission:
        submission = self.db.get(StudentSubmission, submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        if submission.material.group_class.teacher_id != teacher.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to grade this submission",
            )
        return submission

    @staticmethod
    def _check_score(score: float, max_score: float) -> None:
        if score < 0 or score > max_score:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Score must be between 0 and the maximum score",
            )

    def _apply_grade(self, teacher: Teacher, submission: StudentSubmission, score: float,
                     max_score: float, feedback: Optional[str]) -> StudentSubmission:
        submission.score = score
        submission.max_score = max_score
        submission.is_graded = True
        submission.status = SubmissionStatus.graded
        submission.graded_at = utcnow()
        submission.graded_by = teacher.id
        if feedback is not None:
            submission.feedback = feedback
        self.db.commit()
        self.db.refresh(submission)
        return submission

    def grade_submission(
        self, teacher: Teacher, submission_id: str, score: float, max_score: float, feedback: Optional[str] = None
    ) -> StudentSubmission:
        """Grade a submission that has not been graded yet."""
        submission = self.get_owned_submission(teacher, submission_id)
        if submission.is_graded:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Submission has already been graded")
        self._check_score(score, max_score)
        return self._apply_grade(teacher, submission, score, max_score, feedback)

    def update_score(
        self, teacher: Teacher, submission_id: str, score: float,
        max_score: Optional[float] = None, feedback: Optional[str] = None,
    ) -> StudentSubmission:
        """Correct the score of a submission, graded or not."""
        submission = self.get_owned_submission(teacher, submission_id)
        max_score = max_score if max_score is not None else submission.max_score
        if not max_score:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A maximum score is required")
        self._check_score(score, max_score)
        return self._apply_grade(teacher, submission, score, max_score, feedback)

    def teacher_dashboard(self, teacher: Teacher) -> TeacherDashboard:
        class_ids = [c.id for c in self.db.query(GroupClass.id).filter(GroupClass.teacher_id == teacher.id)]

        kind_counts = dict(
            self.db.query(Quiz.kind, func.count(Quiz.id))
            .filter(Quiz.teacher_id == teacher.id)
            .group_by(Quiz.kind)
            .all()
        )
        students = 0
        pending = 0
        recent = []
        if class_ids:
            students = (
                self.db.query(func.count(func.distinct(ClassEnrollment.student_id)))
                .filter(
                    ClassEnrollment.class_id.in_(class_ids),
                    ClassEnrollment.status == EnrollmentStatus.approved,
                )
                .scalar()
            ) or 0
            submissions = (
                self.db.query(StudentSubmission)
                .join(ClassMaterial, StudentSubmission.material_id == ClassMaterial.id)
                .filter(ClassMaterial.class_id.in_(class_ids))
            )
            pending = submissions.filter(StudentSubmission.is_graded.is_(False)).count()
            recent = [
                RecentSubmission(
                    id=s.id,
                    student_name=s.student.student_name,
                    material_title=s.material.title,
                    class_name=s.material.group_class.class_name,
                    status=s.status,
                    score=s.score,
                    max_score=s.max_score,
                    submitted_at=s.submitted_at,
                )
                for s in submissions.order_by(StudentSubmission.submitted_at.desc()).limit(5)
            ]

        return TeacherDashboard(
            classesCount=len(class_ids),
            studentsCount=students,
            quizzesCount=kind_counts.get(QuizKind.quiz, 0),
            examsCount=kind_counts.get(QuizKind.exam, 0),
            assignmentsCount=kind_counts.get(QuizKind.assignment, 0),
            pendingSubmissions=pending,
            recentSubmissions=recent,
        )
