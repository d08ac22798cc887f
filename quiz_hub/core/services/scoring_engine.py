"""Grading of a submitted answer set against a session's answer key."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime

from quiz_hub.constants.quiz_constants import (
    PERCENTAGE_BONUS_WINDOW_SECONDS,
    POINTS_PER_CORRECT_ANSWER,
    TIME_BONUS_WINDOW_SECONDS,
)
from quiz_hub.core.errors import MalformedInput, NoQuestions
from quiz_hub.core.models import ScoreSummary


def score_submission(
    submitted: Mapping[int, str],
    answer_key: Mapping[int, str],
    elapsed_seconds: int = 0,
) -> ScoreSummary:
    """Grade ``submitted`` (question id -> chosen label) against ``answer_key``.

    The total is the size of the key, so partial or padded submissions cannot
    change the denominator. Question ids missing from either side simply do not
    count. Persisted points never depend on ``elapsed_seconds``.
    """
    _validate_mapping(answer_key, "answer key")
    _validate_mapping(submitted, "submitted answers")
    if not _is_int(elapsed_seconds) or elapsed_seconds < 0:
        raise MalformedInput("Elapsed time must be a non-negative whole number of seconds.")

    total = len(answer_key)
    if total == 0:
        raise NoQuestions()

    correct = sum(
        1
        for question_id, label in submitted.items()
        if question_id in answer_key and answer_key[question_id] == label
    )
    percentage = _round_half_up_percentage(correct, total)
    points = correct * POINTS_PER_CORRECT_ANSWER

    time_bonus = 0
    percentage_points = float(percentage)
    if elapsed_seconds > 0:
        time_bonus = max(0, TIME_BONUS_WINDOW_SECONDS - elapsed_seconds)
        percentage_points += max(0.0, (PERCENTAGE_BONUS_WINDOW_SECONDS - elapsed_seconds) / 10)

    return ScoreSummary(
        correct_count=correct,
        total_questions=total,
        percentage=percentage,
        points=points,
        elapsed_seconds=elapsed_seconds,
        time_bonus=time_bonus,
        bonus_points=points + time_bonus // 10,
        percentage_points=percentage_points,
    )


def elapsed_seconds_between(start: datetime | None, end: datetime | None) -> int:
    """Whole seconds from ``start`` to ``end``; 0 if either is missing or end precedes start."""
    if start is None or end is None:
        return 0
    try:
        delta = (end - start).total_seconds()
    except TypeError as exc:
        raise MalformedInput("Start and end times must both include a timezone or both omit it.") from exc
    return max(0, math.floor(delta))


def _round_half_up_percentage(correct: int, total: int) -> int:
    # Integer form of floor(correct / total * 100 + 0.5).
    return (200 * correct + total) // (2 * total)


def _validate_mapping(values: Mapping[int, str], what: str) -> None:
    if not isinstance(values, Mapping):
        raise MalformedInput(f"The {what} must be a mapping of question id to option label.")
    for question_id, label in values.items():
        if not _is_int(question_id):
            raise MalformedInput(f"Invalid question id {question_id!r} in {what}.")
        if not isinstance(label, str):
            raise MalformedInput(f"Invalid option label {label!r} for question {question_id} in {what}.")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
