from datetime import datetime, timedelta, timezone

import pytest

from quiz_hub.core.errors import MalformedInput, NoQuestions
from quiz_hub.core.services.scoring_engine import elapsed_seconds_between, score_submission


def test_partial_credit_summary():
    summary = score_submission({1: "A", 2: "C"}, {1: "A", 2: "B"})

    assert summary.correct_count == 1
    assert summary.total_questions == 2
    assert summary.percentage == 50
    assert summary.points == 10


def test_total_is_taken_from_answer_key():
    summary = score_submission({1: "A", 7: "B", 8: "C"}, {1: "A", 2: "B", 3: "C"})

    assert summary.correct_count == 1
    assert summary.total_questions == 3
    assert summary.percentage == 33


def test_percentage_rounds_half_up():
    key = {question_id: "A" for question_id in range(1, 9)}
    submitted = {1: "A"}

    # 1/8 = 12.5 %
    assert score_submission(submitted, key).percentage == 13


def test_empty_submission_is_valid():
    summary = score_submission({}, {1: "A"})

    assert summary.correct_count == 0
    assert summary.percentage == 0
    assert summary.points == 0


def test_empty_answer_key_fails():
    with pytest.raises(NoQuestions):
        score_submission({1: "A"}, {})


@pytest.mark.parametrize(
    "submitted, key",
    [
        ({"1": "A"}, {1: "A"}),
        ({1: "A"}, {"one": "A"}),
        ({1: 3}, {1: "A"}),
        ({True: "A"}, {1: "A"}),
    ],
)
def test_malformed_mappings_are_rejected(submitted, key):
    with pytest.raises(MalformedInput):
        score_submission(submitted, key)


def test_negative_elapsed_is_rejected():
    with pytest.raises(MalformedInput):
        score_submission({1: "A"}, {1: "A"}, elapsed_seconds=-1)


def test_time_bonus_is_advisory_only():
    fast = score_submission({1: "A", 2: "B"}, {1: "A", 2: "B"}, elapsed_seconds=100)
    slow = score_submission({1: "A", 2: "B"}, {1: "A", 2: "B"}, elapsed_seconds=900)

    assert fast.points == slow.points == 20
    assert fast.correct_count == slow.correct_count == 2
    assert fast.time_bonus == 200
    assert fast.bonus_points == 40
    assert fast.percentage_points == 150.0
    assert slow.time_bonus == 0
    assert slow.bonus_points == 20
    assert slow.percentage_points == 100.0


def test_no_bonus_without_elapsed_time():
    summary = score_submission({1: "A"}, {1: "A"}, elapsed_seconds=0)

    assert summary.time_bonus == 0
    assert summary.bonus_points == summary.points
    assert summary.percentage_points == 100.0


def test_elapsed_seconds_between():
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    assert elapsed_seconds_between(start, start + timedelta(seconds=42, milliseconds=900)) == 42
    assert elapsed_seconds_between(start, start - timedelta(seconds=5)) == 0
    assert elapsed_seconds_between(None, start) == 0
    assert elapsed_seconds_between(start, None) == 0


def test_elapsed_seconds_rejects_mixed_timezones():
    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    naive = datetime(2024, 5, 1, 12, 1)

    with pytest.raises(MalformedInput):
        elapsed_seconds_between(aware, naive)


def test_time_bonus_counts_seconds_and_bonus_points_use_tenths():
    summary = score_submission({1: "A"}, {1: "A"}, elapsed_seconds=295)

    assert summary.time_bonus == 5
    assert summary.bonus_points == 10
