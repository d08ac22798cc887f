"""Business logic for the quiz session lifecycle shared by the API and the sweeper."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone

from quiz_hub.constants.quiz_constants import (
    MAX_QUESTION_COUNT,
    SESSION_TTL_SECONDS,
    STORE_UPDATE_ATTEMPTS,
)
from quiz_hub.core.errors import (
    ContentRejected,
    MalformedInput,
    NotFound,
    QuizServiceError,
    SessionClosed,
    SessionStillOpen,
    StoreConflict,
    UpstreamGeneratorError,
)
from quiz_hub.core.models import (
    AccountId,
    AnswerSelection,
    CallerHistory,
    CallerIdentity,
    CloseOutcome,
    CompletionRecord,
    OwnerQuizInfo,
    ParticipantId,
    PublicQuizView,
    QuizAnalysis,
    QuizResult,
    QuizSession,
    ScoreSummary,
)
from quiz_hub.core.question_generator import QuestionGenerator
from quiz_hub.core.services.leaderboard import has_positions, rank_completions
from quiz_hub.core.services.scoring_engine import elapsed_seconds_between, score_submission
from quiz_hub.core.services.session_store import SessionStore

logger = logging.getLogger(__name__)

PatchBuilder = Callable[[QuizSession], "Mapping[str, object] | None"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizManager:
    """Facade over the store, generator, scoring engine and leaderboard.

    The manager holds no session state of its own. Every mutation is a
    fetch followed by a conditional store update, retried a bounded number of
    times when another caller changed the record in between.
    """

    def __init__(
        self,
        store: SessionStore,
        generator: QuestionGenerator,
        clock: Callable[[], datetime] = _utcnow,
        store_attempts: int = STORE_UPDATE_ATTEMPTS,
    ) -> None:
        if store_attempts < 1:
            raise ValueError("store_attempts must be at least 1.")
        self._store = store
        self._generator = generator
        self._clock = clock
        self._store_attempts = store_attempts

    # --- Create ---

    def create_quiz(self, owner: CallerIdentity, title: str, question_count: int) -> QuizSession:
        """Generate questions for ``title`` and persist a new open session."""
        if not isinstance(title, str) or not title.strip():
            raise MalformedInput("A quiz title is required.")
        if not _is_int(question_count) or not 1 <= question_count <= MAX_QUESTION_COUNT:
            raise MalformedInput(f"Question count must be between 1 and {MAX_QUESTION_COUNT}.")

        try:
            question_set = self._generator.generate(title.strip(), question_count)
        except QuizServiceError:
            raise
        except Exception as exc:
            logger.exception("Question generator failed for topic %r", title)
            raise UpstreamGeneratorError() from exc

        if not question_set.valid:
            logger.info("Generator rejected topic %r requested by %s", title, owner.mail)
            raise ContentRejected()
        question_ids = {question.id for question in question_set.questions}
        if not question_ids or question_ids != set(question_set.answer_key):
            raise UpstreamGeneratorError("Generated answer key does not match the questions")

        session = self._store.insert_session(
            QuizSession(
                id=0,
                title=question_set.title or title.strip(),
                owner=owner.account_id,
                questions=list(question_set.questions),
                answer_key=dict(question_set.answer_key),
                created_at=self._clock(),
            )
        )
        logger.info("Quiz %s created by %s with %d questions", session.id, owner.mail, len(session.questions))
        return session

    # --- Join ---

    def join_quiz(self, session_id: int, participant_id: ParticipantId) -> bool:
        """Add ``participant_id`` to the session. Returns False if already joined."""
        newly_joined = False

        def add_participant(session: QuizSession) -> Mapping[str, object] | None:
            nonlocal newly_joined
            newly_joined = participant_id not in session.joined
            if not newly_joined:
                return None
            return {"joined": [*session.joined, participant_id]}

        self._modify_session(session_id, add_participant)
        if newly_joined:
            logger.debug("Participant %s joined quiz %s", participant_id, session_id)
        return newly_joined

    # --- Submit ---

    def submit_answers(
        self,
        session_id: int,
        participant: CallerIdentity,
        answers: Sequence[AnswerSelection],
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> ScoreSummary:
        """Grade ``answers``, record a Result and mark the participant completed.

        Every call writes a Result. Only the first submission per participant
        reaches the leaderboard.
        """
        submitted = _answers_to_mapping(answers)
        session = self._require_open_session(session_id)
        elapsed = elapsed_seconds_between(start_time, end_time)
        summary = score_submission(submitted, session.answer_key, elapsed)

        participant_id = participant.participant_id
        result = self._store.insert_result(
            QuizResult(
                id=0,
                session_id=session_id,
                session_title=session.title,
                participant_id=participant_id,
                participant_label=participant.mail,
                score=summary.correct_count,
                total_questions=summary.total_questions,
                points=summary.points,
                elapsed_seconds=elapsed,
                submitted_answers=tuple(answers),
                submitted_at=self._clock(),
            )
        )

        def record_completion(current: QuizSession) -> Mapping[str, object] | None:
            if any(record.participant_id == participant_id for record in current.completed):
                return None
            entry = CompletionRecord(
                participant_id=participant_id,
                label=participant.mail,
                score=summary.correct_count,
            )
            return {"completed": [*current.completed, entry]}

        self._modify_session(session_id, record_completion)
        logger.info(
            "Result %s recorded for %s in quiz %s: %d/%d",
            result.id,
            participant_id,
            session_id,
            summary.correct_count,
            summary.total_questions,
        )
        return summary

    # --- Close ---

    def close_quiz(self, session_id: int, caller: CallerIdentity) -> CloseOutcome:
        """Owner-initiated close. Non-owners are told the quiz does not exist."""
        return self._close(session_id, owner=caller.account_id)

    def force_close(self, session_id: int) -> CloseOutcome:
        """Close on behalf of the system, regardless of the owner."""
        return self._close(session_id, owner=None)

    def _close(self, session_id: int, owner: AccountId | None) -> CloseOutcome:
        session = self._store.get_session(session_id)
        if session is None or (owner is not None and session.owner != owner):
            raise NotFound()

        if not session.closed:
            closed = self._store.update_session_where(
                session_id,
                lambda current: not current.closed,
                {"closed": True},
            )
            if closed is not None:
                session = closed
                logger.info("Quiz %s closed by %s", session_id, owner or "system")
            else:
                # Lost the race to another closer; closing is still a success.
                session = self._store.get_session(session_id)
                if session is None:
                    raise NotFound()

        if session.ranked_at is not None:
            return CloseOutcome(session_id=session_id, closed=True, ranked=has_positions(session.completed))

        try:
            ranked = self._rank(session_id)
        except QuizServiceError as exc:
            logger.warning("Quiz %s closed but ranking failed: %s", session_id, exc)
            return CloseOutcome(
                session_id=session_id,
                closed=True,
                ranked=False,
                warning="Quiz closed but failed to update positions",
            )
        return CloseOutcome(session_id=session_id, closed=True, ranked=has_positions(ranked.completed))

    def _rank(self, session_id: int) -> QuizSession:
        def assign_positions(session: QuizSession) -> Mapping[str, object]:
            return {"completed": rank_completions(session.completed), "ranked_at": self._clock()}

        return self._modify_session(session_id, assign_positions, allow_closed=True)

    # --- Expiry ---

    def find_expired_sessions(self, ttl_seconds: int = SESSION_TTL_SECONDS) -> list[QuizSession]:
        """Open sessions created more than ``ttl_seconds`` ago."""
        cutoff = self._clock() - timedelta(seconds=ttl_seconds)
        return self._store.list_sessions(lambda session: not session.closed and session.created_at < cutoff)

    # --- Read-only views ---

    def get_public_view(self, session_id: int) -> PublicQuizView:
        session = self._get_session(session_id)
        return PublicQuizView(
            id=session.id,
            title=session.title,
            questions=session.questions,
            closed=session.closed,
        )

    def get_owner_info(self, session_id: int, caller: CallerIdentity) -> OwnerQuizInfo:
        session = self._get_session(session_id)
        if session.owner != caller.account_id:
            raise NotFound()
        results = self._store.list_results(lambda result: result.session_id == session_id)
        return OwnerQuizInfo(session=session, results=results)

    def get_analysis(self, session_id: int, result_id: int, caller: CallerIdentity) -> QuizAnalysis:
        """Answer key and one Result, available once the quiz is closed."""
        session = self._get_session(session_id)
        result = self._store.get_result(result_id)
        if result is None or result.session_id != session_id:
            raise NotFound("Result not found")
        if caller.account_id != session.owner and caller.participant_id != result.participant_id:
            raise NotFound("Result not found")
        if not session.closed:
            raise SessionStillOpen()
        return QuizAnalysis(session=session, result=result)

    def get_history(self, caller: CallerIdentity) -> CallerHistory:
        results = self._store.list_results(lambda result: result.participant_id == caller.participant_id)
        created = self._store.list_sessions(lambda session: session.owner == caller.account_id)
        return CallerHistory(
            results=sorted(results, key=lambda result: result.submitted_at, reverse=True),
            created_sessions=sorted(created, key=lambda session: session.created_at, reverse=True),
        )

    # --- Helpers ---

    def _get_session(self, session_id: int) -> QuizSession:
        session = self._store.get_session(session_id)
        if session is None:
            raise NotFound()
        return session

    def _require_open_session(self, session_id: int) -> QuizSession:
        session = self._get_session(session_id)
        if session.closed:
            raise SessionClosed()
        return session

    def _modify_session(
        self,
        session_id: int,
        build_patch: PatchBuilder,
        allow_closed: bool = False,
    ) -> QuizSession:
        """Fetch, build a patch and apply it only if nobody changed the record meanwhile."""
        for attempt in range(1, self._store_attempts + 1):
            session = self._get_session(session_id)
            if session.closed and not allow_closed:
                raise SessionClosed()
            patch = build_patch(session)
            if patch is None:
                return session
            expected_version = session.version
            updated = self._store.update_session_where(
                session_id,
                lambda current: current.version == expected_version and (allow_closed or not current.closed),
                patch,
            )
            if updated is not None:
                return updated
            logger.debug("Conflicting update on quiz %s (attempt %d)", session_id, attempt)
        logger.warning("Giving up on quiz %s after %d conflicting updates", session_id, self._store_attempts)
        raise StoreConflict()


def _answers_to_mapping(answers: Sequence[AnswerSelection]) -> dict[int, str]:
    if isinstance(answers, (str, bytes, Mapping)) or not isinstance(answers, Sequence):
        raise MalformedInput("Answers must be a list of {question_id, selected_option} entries.")
    submitted: dict[int, str] = {}
    for answer in answers:
        if not isinstance(answer, AnswerSelection):
            raise MalformedInput("Answers must be a list of {question_id, selected_option} entries.")
        if not _is_int(answer.question_id) or not isinstance(answer.selected_option, str):
            raise MalformedInput(f"Malformed answer for question {answer.question_id!r}.")
        if answer.question_id in submitted:
            raise MalformedInput(f"Question {answer.question_id} was answered more than once.")
        submitted[answer.question_id] = answer.selected_option
    return submitted


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
