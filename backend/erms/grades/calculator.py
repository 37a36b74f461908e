"""Grade arithmetic.

Everything here is pure: callers pass plain numbers or objects with
``score``/``max_score``/``is_graded`` attributes and get plain numbers back.
Results are rounded half-up to two decimals so that 84.125 becomes 84.13
rather than banker's-rounded 84.12.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class GradeWeights:
    affective: float = 10
    summative: float = 50
    formative: float = 40

    @property
    def total(self) -> float:
        return self.affective + self.summative + self.formative

    def is_valid(self) -> bool:
        return (
            min(self.affective, self.summative, self.formative) >= 0
            and abs(self.total - 100) < 1e-9
        )

    @classmethod
    def from_settings(cls, settings) -> "GradeWeights":
        if settings is None:
            return cls()
        return cls(
            affective=settings.affective_percentage,
            summative=settings.summative_percentage,
            formative=settings.formative_percentage,
        )


DEFAULT_WEIGHTS = GradeWeights()


def percentage(score: Optional[float], max_score: Optional[float]) -> Optional[float]:
    if score is None or not max_score or max_score <= 0:
        return None
    return round2(score / max_score * 100)


def compute_average(submissions: Iterable) -> Optional[float]:
    """Mean percentage over graded submissions that have a positive max score."""
    percentages = [
        s.score / s.max_score * 100
        for s in submissions
        if s.is_graded and s.score is not None and s.max_score and s.max_score > 0
    ]
    if not percentages:
        return None
    return round2(sum(percentages) / len(percentages))


def term_grade(
    affective: Optional[float],
    summative: Optional[float],
    formative: Optional[float],
    weights: GradeWeights = DEFAULT_WEIGHTS,
) -> Optional[float]:
    """Weighted term grade, or None until all three components are entered."""
    if affective is None or summative is None or formative is None:
        return None
    weighted = (
        affective * weights.affective
        + summative * weights.summative
        + formative * weights.formative
    )
    return round2(weighted / 100)


def final_grade(
    prelim: Optional[float],
    midterm: Optional[float],
    finals: Optional[float],
) -> Optional[float]:
    """Prelim and midterm are averaged first, then averaged with finals."""
    if prelim is None or midterm is None or finals is None:
        return None
    return round2(((prelim + midterm) / 2 + finals) / 2)
