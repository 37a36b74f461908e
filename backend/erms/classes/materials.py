"""Posting quizzes, exams and assignments to classes, and reading them back."""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from erms.models import ClassMaterial, Quiz, Student, StudentSubmission, Teacher
from .schemas import MaterialCreate, StudentMaterialResponse, QuizForStudent, QuestionForStudent
from .service import ClassService


class MaterialService:
    def __init__(self, db: Session):
        self.db = db
        self.classes = ClassService(db)

    def add_material(self, teacher: Teacher, class_id: str, data: MaterialCreate) -> ClassMaterial:
        group_class = self.classes.get_owned_class(teacher, class_id)
        quiz = self.db.get(Quiz, data.quiz_id)
        if not quiz or quiz.teacher_id != teacher.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
        if any(m.quiz_id == quiz.id for m in group_class.materials):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This item has already been posted to the class",
            )
        material = ClassMaterial(
            class_id=group_class.id,
            quiz_id=quiz.id,
            material_type=quiz.kind,
            title=data.title or quiz.title,
            description=data.description if data.description is not None else quiz.description,
            time_limit=data.time_limit,
            due_date=data.due_date or quiz.end_date,
        )
        self.db.add(material)
        self.db.commit()
        self.db.refresh(material)
        return material

    def list_materials(self, teacher: Teacher, class_id: str) -> list[ClassMaterial]:
        group_class = self.classes.get_owned_class(teacher, class_id)
        return list(group_class.materials)

    def get_owned_material(self, teacher: Teacher, class_id: str, material_id: str) -> ClassMaterial:
        group_class = self.classes.get_owned_class(teacher, class_id)
        material = self.db.get(ClassMaterial, material_id)
        if not material or material.class_id != group_class.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
        return material

    def delete_material(self, teacher: Teacher, class_id: str, material_id: str) -> None:
        material = self.get_owned_material(teacher, class_id, material_id)
        self.db.delete(material)
        self.db.commit()

    # Student side

    def get_material_for_student(self, student: Student, material_id: str) -> ClassMaterial:
        material = self.db.get(ClassMaterial, material_id)
        if not material:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
        self.classes.require_approved(student, material.class_id)
        return material

    def _student_view(self, student: Student, materials: list[ClassMaterial]) -> list[StudentMaterialResponse]:
        submissions = {}
        if materials:
            rows = self.db.query(StudentSubmission).filter(
                StudentSubmission.student_id == student.id,
                StudentSubmission.material_id.in_([m.id for m in materials]),
            )
            submissions = {s.material_id: s for s in rows}

        views = []
        for material in materials:
            submission = submissions.get(material.id)
            views.append(StudentMaterialResponse(
                id=material.id,
                class_id=material.class_id,
                quiz_id=material.quiz_id,
                material_type=material.material_type,
                title=material.title,
                description=material.description,
                time_limit=material.time_limit,
                due_date=material.due_date,
                created_at=material.created_at,
                class_name=material.group_class.class_name,
                attachment_url=material.quiz.attachment_url,
                attachment_name=material.quiz.attachment_name,
                submission_id=submission.id if submission else None,
                submission_status=submission.status if submission else None,
                score=submission.score if submission else None,
                max_score=submission.max_score if submission else None,
            ))
        return views

    def class_materials_for_student(self, student: Student, class_id: str) -> list[StudentMaterialResponse]:
        group_class = self.classes.require_approved(student, class_id)
        return self._student_view(student, list(group_class.materials))

    def all_materials_for_student(self, student: Student) -> list[StudentMaterialResponse]:
        materials = []
        for group_class in self.classes.approved_classes(student):
            materials.extend(group_class.materials)
        materials.sort(key=lambda m: m.created_at, reverse=True)
        return self._student_view(student, materials)

    def quiz_for_student(self, student: Student, material_id: str) -> QuizForStudent:
        material = self.get_material_for_student(student, material_id)
        already_submitted = self.db.query(StudentSubmission.id).filter(
            StudentSubmission.material_id == material.id,
            StudentSubmission.student_id == student.id,
        ).first() is not None
        return QuizForStudent(
            material_id=material.id,
            quiz_id=material.quiz_id,
            title=material.title,
            description=material.description,
            material_type=material.material_type,
            time_limit=material.time_limit,
            due_date=material.due_date,
            already_submitted=already_submitted,
            questions=[QuestionForStudent.model_validate(q) for q in material.quiz.questions],
        )
