"""Attempt scoring and the service-wide rounding convention.

Every percentage the service reports goes through ``round_half_up`` on an
exact ``Fraction``, so 71.5 always becomes 72 regardless of how the
inputs were weighted.  Python's built-in ``round`` uses banker's rounding
and float weights like 0.35 are not exact, so neither is used here.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from fractions import Fraction

from prep_service.models.assessment import Question, ReviewEntry, ScoredResult


def round_half_up(value: Fraction | int) -> int:
    """Round a non-negative value to the nearest integer, halves going up."""
    return math.floor(Fraction(value) + Fraction(1, 2))


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), or 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round_half_up(Fraction(100 * part, whole))


def mean(values: Sequence[int | Fraction]) -> int:
    """Rounded arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0
    return round_half_up(sum((Fraction(v) for v in values), Fraction(0)) / len(values))


def score_answers(
    questions: Sequence[Question], answers: Sequence[int | None]
) -> ScoredResult:
    """Compare each answer slot with its question's correct index.

    An unanswered slot counts against the score and is reported as skipped.
    """
    if len(answers) != len(questions):
        raise ValueError(
            f"answer vector has {len(answers)} slots for {len(questions)} questions"
        )

    correct = incorrect = skipped = 0
    review: list[ReviewEntry] = []

    for question, chosen in zip(questions, answers, strict=True):
        is_correct = chosen is not None and chosen == question.correct_index
        if chosen is None:
            skipped += 1
        elif is_correct:
            correct += 1
        else:
            incorrect += 1

        review.append(
            ReviewEntry(
                question=question.prompt,
                chosen_option=question.options[chosen] if chosen is not None else None,
                correct_option=question.options[question.correct_index],
                is_correct=is_correct,
            )
        )

    return ScoredResult(
        percentage=percentage(correct, len(questions)),
        correct_count=correct,
        incorrect_count=incorrect,
        skipped_count=skipped,
        review=tuple(review),
    )
