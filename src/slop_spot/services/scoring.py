"""Scoring and grading of ingredient ratings."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

# Mean of an empty rating list is undefined, so an empty scan scores zero.
EMPTY_SCORE = 0.0


class Rated(Protocol):
    """Anything carrying a 0-100 health rating."""

    rating: float


class GradeBand(IntEnum):
    """Grade bands ordered from worst to best."""

    HEALTH_HAZARD = 0
    SLOP = 1
    PREMIUM_SLOP = 2
    B_GRADE = 3
    A_GRADE = 4


@dataclass(frozen=True)
class Grade:
    """Grade label and display color for a score."""

    band: GradeBand
    label: str
    color: str


# Upper bounds are inclusive; anything above the last bound is an A.
_GRADE_TABLE: tuple[tuple[float, Grade], ...] = (
    (29, Grade(GradeBand.HEALTH_HAZARD, "Health Hazard", "#E63946")),
    (49, Grade(GradeBand.SLOP, "Slop", "#F77F00")),
    (70, Grade(GradeBand.PREMIUM_SLOP, "Premium Slop", "#FCBF49")),
    (89, Grade(GradeBand.B_GRADE, "B Grade", "#06D6A0")),
)
_TOP_GRADE = Grade(GradeBand.A_GRADE, "A Grade", "#118AB2")


def compute_overall_score(ingredients: Sequence[Rated]) -> float:
    """Return the mean ingredient rating, or EMPTY_SCORE for no ingredients.

    Ratings are trusted to be within bounds; validation happens when the
    analysis is ingested. The result keeps full precision.
    """
    if not ingredients:
        return EMPTY_SCORE
    return sum(ingredient.rating for ingredient in ingredients) / len(ingredients)


def grade(score: float) -> Grade:
    """Map any score to its grade band."""
    for upper_bound, band_grade in _GRADE_TABLE:
        if score <= upper_bound:
            return band_grade
    return _TOP_GRADE


def grade_label(score: float) -> str:
    """Return the grade label for a score."""
    return grade(score).label


def grade_color(score: float) -> str:
    """Return the display color for a score."""
    return grade(score).color


def display_score(score: float) -> int:
    """Round a score for presentation, halves rounding up."""
    return math.floor(score + 0.5)
