"""Automatic quiz grading."""
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from erms.grades.calculator import percentage
from erms.models import QuestionType


def answer_text(value: Any) -> Optional[str]:
    """Render a submitted answer as text; None when nothing was answered."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def answers_match(student_answer: Any, correct_answer: Any) -> bool:
    """Case-insensitive comparison ignoring surrounding whitespace."""
    given = answer_text(student_answer)
    if given is None or not given.strip():
        return False
    return given.lower().strip() == str(correct_answer or "").lower().strip()


@dataclass
class GradingResult:
    answers: list[dict] = field(default_factory=list)
    score: float = 0
    max_score: float = 0
    auto_graded: bool = True

    @property
    def percentage(self) -> Optional[float]:
        if not self.auto_graded:
            return None
        return percentage(self.score, self.max_score)


def grade_quiz(questions: Iterable, answers: dict) -> GradingResult:
    """Grade every question against its stored answer.

    Essay questions cannot be marked automatically; a quiz containing one is
    left for the teacher and its score is not final.
    """
    result = GradingResult()
    for q in questions:
        points = q.points or 1
        given = answers.get(q.id)
        result.max_score += points

        if q.question_type == QuestionType.essay:
            result.auto_graded = False
            is_correct = None
            earned = 0
        else:
            is_correct = answers_match(given, q.correct_answer)
            earned = points if is_correct else 0
            result.score += earned

        result.answers.append({
            "question_id": q.id,
            "question": q.question,
            "question_type": q.question_type.value,
            "student_answer": answer_text(given) or "",
            "correct_answer": q.correct_answer or "",
            "is_correct": is_correct,
            "points": points,
            "earned_points": earned,
        })
    return result
