"""Leaderboard ranking for completed participants."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from quiz_hub.core.models import CompletionRecord


def rank_completions(completed: Sequence[CompletionRecord]) -> list[CompletionRecord]:
    """Return copies of ``completed`` ordered by score, with 1-based positions.

    Python's sort is stable, so participants with equal scores keep the order
    in which they completed. Ranking an already ranked list yields the same
    positions.
    """
    ordered = sorted(completed, key=lambda record: record.score, reverse=True)
    return [replace(record, position=index + 1) for index, record in enumerate(ordered)]


def has_positions(completed: Sequence[CompletionRecord]) -> bool:
    """True once ranking has assigned positions to a non-empty leaderboard."""
    return bool(completed) and all(record.position > 0 for record in completed)
