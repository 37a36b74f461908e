"""Submission endpoints for students and teachers."""
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from erms.audit.service import AuditService
from erms.auth.service import get_current_student, get_current_teacher
from erms.database import get_db
from erms.models import AuditActionType, Student, Teacher
from erms.storage import (
    ASSIGNMENT_FILES, InvalidUploadError, LocalStorage, UploadTooLargeError, get_storage, read_upload,
)
from .schemas import (
    AssignmentSubmitRequest, FileUploadResponse, GradeRequest, ProgressResponse, ProgressSave,
    QuizSubmitRequest, QuizSubmitResult, ScoreUpdate, SubmissionDetail, SubmissionResponse,
    TeacherDashboard, TeacherSubmissionView,
)
from .service import SubmissionService, stored_answers

student_router = APIRouter(prefix="/student", tags=["Student submissions"])
teacher_router = APIRouter(prefix="/teacher", tags=["Teacher grading"])


def get_submission_service(db: Session = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db)


@student_router.post("/materials/{material_id}/submit-quiz", response_model=QuizSubmitResult)
async def submit_quiz(
    material_id: str,
    data: QuizSubmitRequest,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    """Submit answers once; objective questions are marked immediately."""
    submission, result = service.submit_quiz(student, material_id, data.answers, data.time_taken)
    reveal = submission.material.quiz.show_answer_key
    return QuizSubmitResult(
        submission_id=submission.id,
        status=submission.status,
        auto_graded=result.auto_graded,
        score=submission.score,
        max_score=result.max_score,
        percentage=result.percentage,
        answers=stored_answers(submission, reveal_key=reveal),
    )


@student_router.post(
    "/materials/{material_id}/submit-assignment",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    material_id: str,
    data: AssignmentSubmitRequest,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.submit_assignment(student, material_id, data.response, data.file_url)


@student_router.post("/upload-assignment", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_assignment_file(
    file: UploadFile = File(...),
    student: Student = Depends(get_current_student),
    storage: LocalStorage = Depends(get_storage),
):
    """Store a PDF or Word file; submit its URL with submit-assignment."""
    data = await read_upload(file, ASSIGNMENT_FILES)
    try:
        stored = storage.save(
            data, file.filename, file.content_type,
            folder=f"student-submissions/{student.user_id}", policy=ASSIGNMENT_FILES,
        )
    except UploadTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    except InvalidUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return FileUploadResponse(file_url=stored.url, path=stored.path, file_name=stored.file_name, size=stored.size)


@student_router.get("/submissions/{submission_id}", response_model=SubmissionDetail)
async def get_my_submission(
    submission_id: str,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.get_student_submission(student, submission_id)


@student_router.get("/materials/{material_id}/progress", response_model=ProgressResponse)
async def get_quiz_progress(
    material_id: str,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.get_progress(student, material_id)


@student_router.put("/materials/{material_id}/progress", response_model=ProgressResponse)
async def save_quiz_progress(
    material_id: str,
    data: ProgressSave,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.save_progress(student, material_id, data.answers, data.start_time)


@student_router.delete("/materials/{material_id}/progress", status_code=status.HTTP_204_NO_CONTENT)
async def clear_quiz_progress(
    material_id: str,
    student: Student = Depends(get_current_student),
    service: SubmissionService = Depends(get_submission_service),
):
    service.clear_progress(student, material_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@teacher_router.get(
    "/classes/{class_id}/materials/{material_id}/submissions",
    response_model=list[TeacherSubmissionView],
)
async def list_material_submissions(
    class_id: str,
    material_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.list_material_submissions(teacher, class_id, material_id)


@teacher_router.put("/submissions/{submission_id}/grade", response_model=TeacherSubmissionView)
async def grade_submission(
    request: Request,
    submission_id: str,
    data: GradeRequest,
    teacher: Teacher = Depends(get_current_teacher),
    service: SubmissionService = Depends(get_submission_service),
):
    """Grade an ungraded submission. Use the score endpoint to correct a grade."""
    submission = service.grade_submission(teacher, submission_id, data.score, data.max_score, data.feedback)
    AuditService(service.db).record(
        "Graded submission", AuditActionType.update, user=teacher.user,
        resource_type="submission", resource_id=submission.id,
        details=f"{submission.score}/{submission.max_score}", request=request,
    )
    return service.teacher_view(submission)


@teacher_router.put("/submissions/{submission_id}/score", response_model=TeacherSubmissionView)
async def update_submission_score(
    request: Request,
    submission_id: str,
    data: ScoreUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    service: SubmissionService = Depends(get_submission_service),
):
    submission = service.update_score(teacher, submission_id, data.score, data.max_score, data.feedback)
    AuditService(service.db).record(
        "Updated submission score", AuditActionType.update, user=teacher.user,
        resource_type="submission", resource_id=submission.id,
        details=f"{submission.score}/{submission.max_score}", request=request,
    )
    return service.teacher_view(submission)


@teacher_router.get("/dashboard", response_model=TeacherDashboard)
async def teacher_dashboard(
    teacher: Teacher = Depends(get_current_teacher),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.teacher_dashboard(teacher)
