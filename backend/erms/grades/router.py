"""Grade endpoints: teachers record scores, students read their grades."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from erms.audit.service import AuditService
from erms.auth.service import get_current_student, get_current_teacher
from erms.database import get_db
from erms.models import AuditActionType, Student, Teacher
from .schemas import (
    BulkExamScores, BulkManualScores, BulkResult, ClassGradesResponse, ExamScoreResponse,
    ExamScoreUpsert, GradeSettingsResponse, GradeSettingsUpdate, ManualScoreResponse,
    ManualScoreUpsert, StudentClassGrade, StudentClassGradeDetail,
)
from .service import GradeService

teacher_router = APIRouter(prefix="/teacher/classes", tags=["Teacher grades"])
student_router = APIRouter(prefix="/student/grades", tags=["Student grades"])


def get_grade_service(db: Session = Depends(get_db)) -> GradeService:
    return GradeService(db)


@teacher_router.get("/{class_id}/grades", response_model=ClassGradesResponse)
async def class_grades(
    class_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    """Approved students with term scores, term grades, final grade and exam scores."""
    return service.class_grades(teacher, class_id)


@teacher_router.put("/{class_id}/grade-settings", response_model=GradeSettingsResponse)
async def update_grade_settings(
    request: Request,
    class_id: str,
    data: GradeSettingsUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    settings = service.update_settings(teacher, class_id, data)
    AuditService(service.db).record(
        "Updated grade settings", AuditActionType.update, user=teacher.user,
        resource_type="class", resource_id=class_id,
        details=(
            f"{settings.affective_percentage}/{settings.summative_percentage}/"
            f"{settings.formative_percentage}"
        ),
        request=request,
    )
    return settings


@teacher_router.put("/{class_id}/manual-scores", response_model=ManualScoreResponse)
async def save_manual_score(
    class_id: str,
    data: ManualScoreUpsert,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    return service.save_manual_score(teacher, class_id, data)


@teacher_router.put("/{class_id}/manual-scores/bulk", response_model=BulkResult)
async def save_manual_scores(
    request: Request,
    class_id: str,
    data: BulkManualScores,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    result = service.save_manual_scores(teacher, class_id, data.scores)
    AuditService(service.db).record(
        "Saved term scores", AuditActionType.update, user=teacher.user,
        resource_type="class", resource_id=class_id,
        details=f"{result.saved} saved, {len(result.errors)} rejected", request=request,
    )
    return result


@teacher_router.put("/{class_id}/exam-scores", response_model=ExamScoreResponse)
async def save_exam_score(
    class_id: str,
    data: ExamScoreUpsert,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    return service.save_exam_score(teacher, class_id, data)


@teacher_router.put("/{class_id}/exam-scores/bulk", response_model=BulkResult)
async def save_exam_scores(
    request: Request,
    class_id: str,
    data: BulkExamScores,
    teacher: Teacher = Depends(get_current_teacher),
    service: GradeService = Depends(get_grade_service),
):
    result = service.save_exam_scores(teacher, class_id, data.scores)
    AuditService(service.db).record(
        "Saved exam scores", AuditActionType.update, user=teacher.user,
        resource_type="class", resource_id=class_id,
        details=f"{result.saved} saved, {len(result.errors)} rejected", request=request,
    )
    return result


@student_router.get("", response_model=list[StudentClassGrade])
async def my_grades(
    student: Student = Depends(get_current_student),
    service: GradeService = Depends(get_grade_service),
):
    return service.student_grades(student)


@student_router.get("/{class_id}", response_model=StudentClassGradeDetail)
async def my_class_grades(
    class_id: str,
    student: Student = Depends(get_current_student),
    service: GradeService = Depends(get_grade_service),
):
    return service.student_class_grades(student, class_id)
