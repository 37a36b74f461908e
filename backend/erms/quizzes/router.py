"""Quiz, exam and assignment endpoints for teachers."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from erms.audit.service import AuditService
from erms.auth.service import get_current_teacher
from erms.database import get_db
from erms.models import AuditActionType, QuizKind, Teacher
from erms.storage import (
    LocalStorage, QUESTION_IMAGES, InvalidUploadError, UploadTooLargeError, StorageError, get_storage,
    read_upload,
)
from .duplicates import find_duplicates
from .generator import (
    QuizGenerator, QuizGenerationError, GenerationNotConfiguredError, QuotaExceededError,
    InvalidGenerationError, get_quiz_generator,
)
from .schemas import (
    QuizCreate, ExamCreate, AssignmentCreate, QuizSummary, QuizDetail,
    DuplicateCheckRequest, DuplicateCheckResponse, DuplicatePair,
    GenerateQuizRequest, GenerateQuizResponse, GenerateExamRequest, GenerateExamResponse,
    QuizUpdate, QuestionsReplace, UploadResponse,
)
from .service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teacher", tags=["Teacher quizzes"])


def get_quiz_service(db: Session = Depends(get_db)) -> QuizService:
    return QuizService(db)


def _audit_created(service: QuizService, teacher: Teacher, quiz, request: Request) -> None:
    AuditService(service.db).record(
        f"Created {quiz.kind.value}", AuditActionType.create, user=teacher.user,
        resource_type=quiz.kind.value, resource_id=quiz.id, details=quiz.title, request=request,
    )


@router.post("/quizzes", response_model=QuizDetail, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: Request,
    data: QuizCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.create_quiz(teacher, data)
    _audit_created(service, teacher, quiz, request)
    return quiz


@router.post("/exams", response_model=QuizDetail, status_code=status.HTTP_201_CREATED)
async def create_exam(
    request: Request,
    data: ExamCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    exam = service.create_exam(teacher, data)
    _audit_created(service, teacher, exam, request)
    return exam


@router.post("/assignments", response_model=QuizDetail, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    request: Request,
    data: AssignmentCreate,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    assignment = service.create_assignment(teacher, data)
    _audit_created(service, teacher, assignment, request)
    return assignment


@router.get("/quizzes", response_model=list[QuizSummary])
async def list_quizzes(
    kind: Optional[QuizKind] = None,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    """The teacher's quizzes, exams and assignments, newest first."""
    return service.list_quizzes(teacher, kind)


@router.get("/quizzes/{quiz_id}", response_model=QuizDetail)
async def get_quiz(
    quiz_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return service.get_owned_quiz(teacher, quiz_id)


@router.put("/quizzes/{quiz_id}", response_model=QuizDetail)
async def update_quiz(
    request: Request,
    quiz_id: str,
    data: QuizUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    """Change details of a quiz, exam or assignment; fields left out are kept."""
    quiz = service.update_quiz(teacher, quiz_id, data)
    AuditService(service.db).record(
        f"Updated {quiz.kind.value}", AuditActionType.update, user=teacher.user,
        resource_type=quiz.kind.value, resource_id=quiz.id, details=quiz.title, request=request,
    )
    return quiz


@router.put("/quizzes/{quiz_id}/questions", response_model=QuizDetail)
async def replace_questions(
    request: Request,
    quiz_id: str,
    data: QuestionsReplace,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.replace_questions(teacher, quiz_id, data.questions)
    AuditService(service.db).record(
        f"Updated {quiz.kind.value} questions", AuditActionType.update, user=teacher.user,
        resource_type=quiz.kind.value, resource_id=quiz.id,
        details=f"{quiz.question_count} questions", request=request,
    )
    return quiz


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    request: Request,
    quiz_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    service.delete_quiz(teacher, quiz_id)
    AuditService(service.db).record(
        "Deleted quiz", AuditActionType.delete, user=teacher.user,
        resource_type="quiz", resource_id=quiz_id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/questions/check-duplicates", response_model=DuplicateCheckResponse)
async def check_duplicates(
    data: DuplicateCheckRequest,
    teacher: Teacher = Depends(get_current_teacher),
):
    """Report repeated questions in a draft; numbers are 1-based."""
    pairs = [
        DuplicatePair(first=first + 1, duplicate=repeat + 1, question=data.questions[repeat])
        for first, repeat in find_duplicates(data.questions)
    ]
    return DuplicateCheckResponse(has_duplicates=bool(pairs), duplicates=pairs)


def _generate(call, what: str):
    """Run a generator call, mapping its failures to HTTP errors."""
    try:
        return call()
    except GenerationNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except QuotaExceededError as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
    except InvalidGenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except QuizGenerationError as e:
        logger.error(f"{what.capitalize()} generation failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to generate {what}: {e}")


@router.post("/generate-quiz", response_model=GenerateQuizResponse)
def generate_quiz(
    data: GenerateQuizRequest,
    teacher: Teacher = Depends(get_current_teacher),
    generator: QuizGenerator = Depends(get_quiz_generator),
):
    """Draft questions with AI for the teacher to review before saving."""
    model, questions = _generate(
        lambda: generator.generate(data.prompt, data.source_text, data.quiz_type, data.num_questions),
        "quiz",
    )
    return {"model": model, "questions": questions}


@router.post("/generate-exam", response_model=GenerateExamResponse)
def generate_exam(
    data: GenerateExamRequest,
    teacher: Teacher = Depends(get_current_teacher),
    generator: QuizGenerator = Depends(get_quiz_generator),
):
    """Draft a mixed-type exam; ``question_counts`` maps each question type to how many to ask for."""
    counts = {qtype.value: count for qtype, count in data.question_counts.items()}
    model, questions = _generate(
        lambda: generator.generate_exam(data.prompt, data.source_text, data.exam_period.value, counts),
        "exam",
    )
    return {"model": model, "exam_period": data.exam_period, "questions": questions}


@router.post("/upload-question-image", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_question_image(
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    storage: LocalStorage = Depends(get_storage),
):
    data = await read_upload(file, QUESTION_IMAGES)
    try:
        stored = storage.save(
            data, file.filename, file.content_type,
            folder=f"quiz-images/{teacher.user_id}", policy=QUESTION_IMAGES,
        )
    except UploadTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    except InvalidUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return UploadResponse(url=stored.url, path=stored.path, file_name=stored.file_name, size=stored.size)


@router.delete("/upload-question-image", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question_image(
    file_name: str,
    teacher: Teacher = Depends(get_current_teacher),
    storage: LocalStorage = Depends(get_storage),
):
    """Remove an image the teacher uploaded earlier; ``file_name`` is the stored path."""
    if not file_name.startswith(f"quiz-images/{teacher.user_id}/"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own images")
    try:
        deleted = storage.delete(file_name)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
