"""AI question generation through the Gemini REST API."""
import json
import logging
import re
from typing import Optional

import requests

from erms import config
from .duplicates import normalize_question

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MODEL_NOT_FOUND = 404
QUOTA_EXCEEDED = 429

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

FORMAT_INSTRUCTIONS = {
    "multiple-choice": (
        "Each question should have 4 options with exactly one correct answer.\n\n"
        "Return a valid JSON array with the following structure:\n"
        '[{"type": "multiple-choice", "question": "The question text", '
        '"options": ["Option A", "Option B", "Option C", "Option D"], '
        '"correctAnswer": "The correct option text (must match one of the options exactly)"}]'
    ),
    "true-false": (
        "Each question should be a statement that can be answered with True or False.\n\n"
        "Return a valid JSON array with the following structure:\n"
        '[{"type": "true-false", "question": "The statement to evaluate", "correctAnswer": "true"}]'
    ),
    "identification": (
        "Each question should require a short text answer (1-3 words).\n\n"
        "Return a valid JSON array with the following structure:\n"
        '[{"type": "identification", "question": "The question text", "correctAnswer": "The short answer"}]'
    ),
    "essay": (
        "Each question should be an open-ended essay question that requires a detailed written "
        "response. These will be graded by the teacher.\n\n"
        "Return a valid JSON array with the following structure:\n"
        '[{"type": "essay", "question": "The essay question text", "correctAnswer": ""}]'
    ),
}

# Per-type blocks combined into one exam prompt
EXAM_FORMATS = {
    "multiple-choice": (
        "Multiple Choice questions: Each should have 4 options with exactly one correct answer.\n"
        '{"type": "multiple-choice", "question": "Question text", '
        '"options": ["Option A", "Option B", "Option C", "Option D"], '
        '"correctAnswer": "The correct option text (must match one of the options exactly)", "points": 1}'
    ),
    "true-false": (
        "True/False questions: Each should be a statement that can be answered with True or False.\n"
        '{"type": "true-false", "question": "Statement to evaluate", "correctAnswer": "true", "points": 1}'
    ),
    "identification": (
        "Identification questions: Each should require a short text answer (1-3 words).\n"
        '{"type": "identification", "question": "Question text", "correctAnswer": "Short answer", "points": 1}'
    ),
    "enumeration": (
        "Enumeration questions: Each should ask for a list of items. "
        "The correct answer should be a comma-separated list.\n"
        '{"type": "enumeration", "question": "Question asking to list items", '
        '"correctAnswer": "item1, item2, item3", "points": 1}'
    ),
    "essay": (
        "Essay questions: Each should be an open-ended question requiring a detailed written response. "
        "These will be graded by the teacher.\n"
        '{"type": "essay", "question": "Essay question text", "correctAnswer": "", "points": 5}'
    ),
    "math": (
        "Math questions: Each should be a mathematical problem with a numerical or expression answer.\n"
        '{"type": "math", "question": "Math problem text", '
        '"correctAnswer": "The numerical answer or expression", "points": 1}'
    ),
}


class QuizGenerationError(Exception):
    """Base exception for question generation failures."""


class GenerationNotConfiguredError(QuizGenerationError):
    """Raised when no API key is configured."""


class QuotaExceededError(QuizGenerationError):
    """Raised when every model refused the request for quota reasons."""


class InvalidGenerationError(QuizGenerationError):
    """Raised when the model reply is not a usable list of questions."""


def _content_parts(prompt: str, source_text: str) -> list[str]:
    parts = []
    if source_text.strip():
        parts.append(f"Content from uploaded file:\n{source_text.strip()}")
    if prompt.strip():
        parts.append(f"Additional instructions: {prompt.strip()}")
    return parts


def build_prompt(prompt: str, source_text: str, quiz_type: str, num_questions: int) -> str:
    parts = [
        "You are an educational quiz generator. "
        f"Generate exactly {num_questions} quiz questions based on the provided content.",
        f"Quiz Type: {quiz_type}",
        FORMAT_INSTRUCTIONS[quiz_type],
        "IMPORTANT:\n"
        "- Return ONLY the JSON array, no markdown, no code blocks, no explanations.\n"
        "- Make questions educational and clear.\n"
        "- Ensure correct answers are accurate.\n"
        f"- Generate exactly {num_questions} questions.\n"
        "- DO NOT generate duplicate or very similar questions. Each question must be unique.",
    ]
    return "\n\n".join(parts + _content_parts(prompt, source_text))


def build_exam_prompt(prompt: str, source_text: str, exam_period: str, question_counts: dict[str, int]) -> str:
    """Prompt for an exam mixing several question types, each with its own count."""
    counts = "\n".join(f"- {qtype}: {count} questions" for qtype, count in question_counts.items())
    parts = [
        "You are an educational exam generator. "
        f"Generate exam questions for a {exam_period} examination.",
        f"Generate questions for the following types and counts:\n{counts}",
        f"Total questions: {sum(question_counts.values())}",
        "Question format instructions for each type:",
        *(EXAM_FORMATS[qtype] for qtype in question_counts),
        "Return a valid JSON array containing ALL questions from all types combined.\n\n"
        "IMPORTANT:\n"
        "- Return ONLY the JSON array, no markdown, no code blocks, no explanations.\n"
        "- Make questions educational, clear, and appropriate for an exam.\n"
        "- Ensure correct answers are accurate.\n"
        "- Generate the exact number of questions specified for each type.\n"
        "- DO NOT generate duplicate or very similar questions. Each question must be unique.\n"
        "- Vary the topics and difficulty levels within the content provided.",
    ]
    return "\n\n".join(parts + _content_parts(prompt, source_text))


def _load_items(text: str) -> list:
    cleaned = _CODE_FENCE.sub("", text.strip())
    start, end = cleaned.find("["), cleaned.rfind("]")
    if start == -1 or end <= start:
        raise InvalidGenerationError("The AI response did not contain a question list")
    try:
        items = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise InvalidGenerationError(f"The AI response was not valid JSON: {e}") from e
    return items if isinstance(items, list) else []


def _shape(item: dict, question_type: str, question: str) -> Optional[dict]:
    """Normalize one generated question, or None when it cannot be used."""
    options = [str(o).strip() for o in item.get("options") or [] if str(o).strip()]
    answer = str(item.get("correctAnswer", item.get("correct_answer", "")) or "").strip()
    if question_type == "multiple-choice" and (len(options) < 2 or answer not in options):
        return None
    if question_type == "true-false":
        answer = answer.lower()
        if answer not in ("true", "false"):
            return None
    return {
        "question_type": question_type,
        "question": question,
        "options": options if question_type == "multiple-choice" else [],
        "correct_answer": "" if question_type == "essay" else answer,
    }


def _points(item: dict, question_type: str) -> int:
    default = 5 if question_type == "essay" else 1
    try:
        points = int(item.get("points") or default)
    except (TypeError, ValueError):
        return default
    return min(max(points, 1), 100)


def _collect(text: str, limit: int, type_of, with_points: bool = False) -> list[dict]:
    questions = []
    seen = set()
    for item in _load_items(text):
        if not isinstance(item, dict):
            continue
        question_type = type_of(item)
        if question_type is None:
            continue
        question = str(item.get("question", "")).strip()
        key = normalize_question(question)
        if not key or key in seen:
            continue
        seen.add(key)
        entry = _shape(item, question_type, question)
        if entry is None:
            continue
        if with_points:
            entry["points"] = _points(item, question_type)
        questions.append(entry)
    if not questions:
        raise InvalidGenerationError("The AI response contained no usable questions")
    return questions[:limit]


def parse_questions(text: str, quiz_type: str, limit: int) -> list[dict]:
    """Turn a model reply into question dicts, dropping malformed and repeated entries."""
    return _collect(text, limit, lambda item: quiz_type)


def parse_exam_questions(text: str, question_types: list[str], limit: int) -> list[dict]:
    """Like ``parse_questions`` but each item names its own type, which must be one requested."""
    allowed = set(question_types)

    def type_of(item):
        question_type = str(item.get("type") or question_types[0]).strip().lower()
        return question_type if question_type in allowed else None

    return _collect(text, limit, type_of, with_points=True)


class QuizGenerator:
    """Calls Gemini, falling back through the configured models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[list[str]] = None,
        timeout: int = config.GEMINI_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.models = models or list(config.GEMINI_MODELS)
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, prompt: str) -> tuple[str, str]:
        """Return (model, text) from the first model that answers."""
        if not self.api_key:
            raise GenerationNotConfiguredError("AI generation is not configured")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 8192},
        }
        quota_hit = False
        last_error = None
        for model in self.models:
            logger.info(f"Requesting questions from {model}")
            try:
                resp = self.session.post(
                    GEMINI_URL.format(model=model),
                    params={"key": self.api_key},
                    json=payload,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                logger.warning(f"Model {model} request failed: {e}")
                last_error = str(e)
                continue

            if resp.status_code == MODEL_NOT_FOUND:
                logger.warning(f"Model {model} not found, trying next")
                continue
            if resp.status_code == QUOTA_EXCEEDED:
                quota_hit = True
                logger.warning(f"Model {model} over quota, trying next")
                continue
            if not resp.ok:
                last_error = f"API error: {resp.status_code}"
                logger.warning(f"Model {model} failed: {resp.status_code} {resp.text[:200]}")
                continue

            data = resp.json()
            try:
                text = data["candidates"][0]["content"]["parts"][0]["text"]
            except (KeyError, IndexError, TypeError):
                last_error = "Empty response"
                logger.warning(f"Model {model} returned no text")
                continue
            return model, text

        # Quota is only to blame when no model failed for another reason
        if quota_hit and last_error is None:
            raise QuotaExceededError("API quota exceeded. Please try again later.")
        raise QuizGenerationError(last_error or "All models failed")

    def generate(self, prompt: str, source_text: str, quiz_type: str, num_questions: int) -> tuple[str, list[dict]]:
        model, text = self.complete(build_prompt(prompt, source_text, quiz_type, num_questions))
        return model, parse_questions(text, quiz_type, num_questions)

    def generate_exam(
        self, prompt: str, source_text: str, exam_period: str, question_counts: dict[str, int]
    ) -> tuple[str, list[dict]]:
        model, text = self.complete(build_exam_prompt(prompt, source_text, exam_period, question_counts))
        return model, parse_exam_questions(text, list(question_counts), sum(question_counts.values()))


def get_quiz_generator() -> QuizGenerator:
    return QuizGenerator()
