from quiz_hub.core.models import CompletionRecord, ParticipantId
from quiz_hub.core.services.leaderboard import has_positions, rank_completions


def _record(identity: str, score: int) -> CompletionRecord:
    return CompletionRecord(participant_id=ParticipantId(identity), label=f"{identity}@example.com", score=score)


def test_ties_keep_completion_order():
    ranked = rank_completions([_record("A", 5), _record("B", 5), _record("C", 3)])

    assert [(record.participant_id, record.position) for record in ranked] == [("A", 1), ("B", 2), ("C", 3)]


def test_higher_scores_move_up():
    ranked = rank_completions([_record("A", 1), _record("B", 4), _record("C", 2)])

    assert [record.participant_id for record in ranked] == ["B", "C", "A"]
    assert [record.position for record in ranked] == [1, 2, 3]


def test_ranking_is_idempotent():
    once = rank_completions([_record("A", 2), _record("B", 7), _record("C", 2), _record("D", 0)])

    assert rank_completions(once) == once


def test_input_is_not_mutated():
    records = [_record("A", 1), _record("B", 2)]

    rank_completions(records)

    assert all(record.position == 0 for record in records)


def test_empty_leaderboard():
    assert rank_completions([]) == []
    assert not has_positions([])


def test_has_positions():
    records = [_record("A", 1)]

    assert not has_positions(records)
    assert has_positions(rank_completions(records))
