"""Creating and managing quizzes, exams and assignments."""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from erms.models import Quiz, QuizQuestion, QuizKind, QuestionType, Teacher
from .duplicates import find_duplicates
from .schemas import QuestionIn, QuizCreate, ExamCreate, AssignmentCreate, QuizUpdate

logger = logging.getLogger(__name__)

TRUE_FALSE_ANSWERS = {"true", "false"}

# Fields each kind may change after creation
EDITABLE_FIELDS = {
    QuizKind.quiz: {"title", "description", "quiz_type", "show_answer_key", "start_date", "end_date"},
    QuizKind.exam: {
        "title", "description", "subject", "period", "school_name", "introduction",
        "show_answer_key", "start_date", "end_date",
    },
    QuizKind.assignment: {"title", "description", "due_date", "attachment_url", "attachment_name"},
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_questions(questions: list[QuestionIn], require_answers: bool) -> None:
    """Check answer keys and reject repeated questions.

    Quizzes need an answer for every auto-gradable question; exams may leave
    answers blank for the teacher to grade by hand.
    """
    for number, q in enumerate(questions, start=1):
        answer = (q.correct_answer or "").strip()
        if q.question_type == QuestionType.multiple_choice:
            if len(q.options) < 2:
                raise _bad_request(f"Question {number} needs at least two options")
            if answer and answer not in q.options:
                raise _bad_request(f"Question {number}: the correct answer must be one of the options")
        if q.question_type == QuestionType.true_false and answer and answer.lower() not in TRUE_FALSE_ANSWERS:
            raise _bad_request(f"Question {number}: the answer must be true or false")
        if require_answers and q.question_type != QuestionType.essay and not answer:
            raise _bad_request(f"Question {number} needs a correct answer")

    duplicates = find_duplicates([q.question for q in questions])
    if duplicates:
        first, repeat = duplicates[0]
        raise _bad_request(f"Question {repeat + 1} duplicates question {first + 1}")


def build_questions(questions: list[QuestionIn]) -> list[QuizQuestion]:
    return [
        QuizQuestion(
            question_type=q.question_type,
            question=q.question,
            options=q.options if q.question_type == QuestionType.multiple_choice else [],
            correct_answer=(q.correct_answer or "").strip(),
            points=q.points,
            image_url=q.image_url,
            order_number=number,
        )
        for number, q in enumerate(questions, start=1)
    ]


class QuizService:
    def __init__(self, db: Session):
        self.db = db

    def _save(self, quiz: Quiz) -> Quiz:
        # Questions are inserted with their quiz in one transaction
        self.db.add(quiz)
        self.db.commit()
        self.db.refresh(quiz)
        logger.info(f"Created {quiz.kind.value} {quiz.id} with {quiz.question_count} questions")
        return quiz

    def create_quiz(self, teacher: Teacher, data: QuizCreate) -> Quiz:
        validate_questions(data.questions, require_answers=True)
        quiz = Quiz(
            teacher_id=teacher.id,
            kind=QuizKind.quiz,
            title=data.title.strip(),
            description=data.description,
            quiz_type=data.quiz_type,
            start_date=data.start_date,
            end_date=data.end_date,
            show_answer_key=data.show_answer_key,
            questions=build_questions(data.questions),
        )
        return self._save(quiz)

    def create_exam(self, teacher: Teacher, data: ExamCreate) -> Quiz:
        validate_questions(data.questions, require_answers=False)
        quiz = Quiz(
            teacher_id=teacher.id,
            kind=QuizKind.exam,
            title=data.title.strip(),
            description=data.description,
            quiz_type="exam",
            subject=data.subject,
            period=data.period,
            school_name=data.school_name,
            introduction=data.introduction,
            start_date=data.start_date,
            end_date=data.end_date,
            show_answer_key=data.show_answer_key,
            questions=build_questions(data.questions),
        )
        return self._save(quiz)

    def create_assignment(self, teacher: Teacher, data: AssignmentCreate) -> Quiz:
        description = data.description.strip()
        if not description:
            raise _bad_request("Title and description are required")
        quiz = Quiz(
            teacher_id=teacher.id,
            kind=QuizKind.assignment,
            title=data.title.strip(),
            description=description,
            quiz_type="assignment",
            end_date=data.due_date,
            attachment_url=data.attachment_url,
            attachment_name=data.attachment_name,
        )
        return self._save(quiz)

    def list_quizzes(self, teacher: Teacher, kind: Optional[QuizKind] = None) -> list[Quiz]:
        query = (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions))
            .filter(Quiz.teacher_id == teacher.id)
        )
        if kind is not None:
            query = query.filter(Quiz.kind == kind)
        return query.order_by(Quiz.created_at.desc()).all()

    def get_owned_quiz(self, teacher: Teacher, quiz_id: str) -> Quiz:
        quiz = self.db.get(Quiz, quiz_id)
        if not quiz:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
        if quiz.teacher_id != teacher.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this quiz",
            )
        return quiz

    def delete_quiz(self, teacher: Teacher, quiz_id: str) -> None:
        quiz = self.get_owned_quiz(teacher, quiz_id)
        self.db.delete(quiz)
        self.db.commit()

    def update_quiz(self, teacher: Teacher, quiz_id: str, data: QuizUpdate) -> Quiz:
        quiz = self.get_owned_quiz(teacher, quiz_id)
        changes = data.model_dump(exclude_unset=True)
        allowed = EDITABLE_FIELDS[quiz.kind]
        for field in changes:
            if field not in allowed:
                raise _bad_request(f"{field} cannot be changed on this {quiz.kind.value}")

        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise _bad_request("Title is required")
            changes["title"] = title
        if quiz.kind == QuizKind.assignment:
            if "description" in changes and not (changes["description"] or "").strip():
                raise _bad_request("Title and description are required")
            if "due_date" in changes:
                changes["end_date"] = changes.pop("due_date")
        if "show_answer_key" in changes and changes["show_answer_key"] is None:
            del changes["show_answer_key"]

        start = changes.get("start_date", quiz.start_date)
        end = changes.get("end_date", quiz.end_date)
        if start and end and end <= start:
            raise _bad_request("End date must be after start date")

        for field, value in changes.items():
            setattr(quiz, field, value)
        self.db.commit()
        self.db.refresh(quiz)
        logger.info(f"Updated {quiz.kind.value} {quiz.id}: {', '.join(sorted(changes))}")
        return quiz

    def replace_questions(self, teacher: Teacher, quiz_id: str, questions: list[QuestionIn]) -> Quiz:
        """Swap the whole question set, renumbering from 1."""
        quiz = self.get_owned_quiz(teacher, quiz_id)
        if quiz.kind == QuizKind.assignment:
            raise _bad_request("Assignments have no questions")
        validate_questions(questions, require_answers=quiz.kind == QuizKind.quiz)
        quiz.questions = build_questions(questions)
        self.db.commit()
        self.db.refresh(quiz)
        logger.info(f"Replaced questions of {quiz.kind.value} {quiz.id} ({quiz.question_count} now)")
        return quiz
