# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Percentage and letter grade computation.

Percentage is rounded half-up to two decimal places and grade thresholds
are applied to the rounded value, so 89.995 is stored as 90.00 and graded
A+.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

from schooldesk.domains.results.exceptions import InvalidInputError

# Inclusive lower bounds, highest first
GRADE_THRESHOLDS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("90"), "A+"),
    (Decimal("80"), "A"),
    (Decimal("70"), "B+"),
    (Decimal("60"), "B"),
    (Decimal("50"), "C+"),
    (Decimal("40"), "C"),
    (Decimal("30"), "D"),
)
FAILING_GRADE = "F"

_TWO_PLACES = Decimal("0.01")


def _number(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number", {"field": name})
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite", {"field": name})
    return float(value)


def _score(value: object) -> float:
    score = _number("score", value)
    if score < 0:
        raise InvalidInputError("score must not be negative", {"field": "score"})
    return score


def _max_marks(value: object) -> float:
    max_marks = _number("max_marks", value)
    if max_marks <= 0:
        raise InvalidInputError("max_marks must be positive", {"field": "max_marks"})
    return max_marks


def validate_marks(score: object, max_marks: object) -> tuple[float, float]:
    """Validate a score against its maximum marks.

    Args:
        score: Marks obtained.
        max_marks: Maximum marks for the paper.

    Returns:
        The validated (score, max_marks) pair as floats.

    Raises:
        InvalidInputError: If either value is not a finite number, score is
            negative, max_marks is not positive, or score exceeds max_marks.
    """
    score_f = _score(score)
    max_f = _max_marks(max_marks)
    if score_f > max_f:
        raise InvalidInputError(
            "score must not exceed max_marks",
            {"score": score_f, "max_marks": max_f},
        )
    return score_f, max_f


def validate_partial_marks(score: object | None, max_marks: object | None) -> None:
    """Validate whichever of score and max_marks is supplied.

    Used before the stored record is loaded; the combined check runs once
    the missing value is known.

    Raises:
        InvalidInputError: If a supplied value is invalid.
    """
    if score is not None and max_marks is not None:
        validate_marks(score, max_marks)
    elif score is not None:
        _score(score)
    elif max_marks is not None:
        _max_marks(max_marks)


def round_half_up(value: Decimal | float) -> Decimal:
    """Round to two places, halves away from zero."""
    return Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_percentage(score: float, max_marks: float) -> Decimal:
    """Compute the percentage rounded half-up to two places.

    Args:
        score: Validated marks obtained.
        max_marks: Validated maximum marks.

    Returns:
        Percentage as a Decimal with two places.
    """
    raw = Decimal(str(score)) / Decimal(str(max_marks)) * 100
    return round_half_up(raw)


def letter_grade(percentage: Decimal | float) -> str:
    """Map a rounded percentage to a letter grade.

    Args:
        percentage: Percentage already rounded to two places.

    Returns:
        Letter grade from A+ down to F.
    """
    value = Decimal(str(percentage))
    for threshold, grade in GRADE_THRESHOLDS:
        if value >= threshold:
            return grade
    return FAILING_GRADE


def grade_marks(score: object, max_marks: object) -> tuple[float, float, float, str]:
    """Validate marks and derive percentage and grade.

    Args:
        score: Marks obtained.
        max_marks: Maximum marks.

    Returns:
        Tuple of (score, max_marks, percentage, grade).

    Raises:
        InvalidInputError: If the marks are invalid.
    """
    score_f, max_f = validate_marks(score, max_marks)
    percentage = compute_percentage(score_f, max_f)
    return score_f, max_f, float(percentage), letter_grade(percentage)
