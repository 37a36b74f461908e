"""Detection of repeated questions within a quiz."""
import re

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[?.!]+$")


def normalize_question(text: str) -> str:
    """Canonical form used to compare question texts.

    >>> normalize_question("  What is   2 + 2? ")
    'what is 2 + 2'
    """
    text = _WHITESPACE.sub(" ", (text or "").lower().strip())
    return _TRAILING_PUNCTUATION.sub("", text).strip()


def find_duplicates(questions: list[str]) -> list[tuple[int, int]]:
    """Return (first, repeat) index pairs, 0-based, for questions seen earlier."""
    seen: dict[str, int] = {}
    pairs = []
    for index, text in enumerate(questions):
        key = normalize_question(text)
        if not key:
            continue
        if key in seen:
            pairs.append((seen[key], index))
        else:
            seen[key] = index
    return pairs
