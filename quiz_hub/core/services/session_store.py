"""Record store for quiz sessions and results.

The store hands out copies: callers never share mutable state with it, so the
only way to change a session is ``update_session_where``, which applies a patch
atomically and only if the predicate still holds for the stored record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from copy import deepcopy
from dataclasses import replace
from threading import Lock

from quiz_hub.core.models import QuizResult, QuizSession

SessionPredicate = Callable[[QuizSession], bool]
ResultPredicate = Callable[[QuizResult], bool]

_IMMUTABLE_SESSION_FIELDS = frozenset({"id", "owner", "created_at", "version"})


class SessionStore:
    """In-process store with single-record atomic conditional updates."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[int, QuizSession] = {}
        self._results: dict[int, QuizResult] = {}
        self._session_counter: int = 0
        self._result_counter: int = 0

    # --- Sessions ---

    def insert_session(self, session: QuizSession) -> QuizSession:
        """Persist a new session under a freshly assigned id and return it."""
        with self._lock:
            self._session_counter += 1
            stored = replace(deepcopy(session), id=self._session_counter, version=0)
            self._sessions[stored.id] = stored
            return deepcopy(stored)

    def get_session(self, session_id: int) -> QuizSession | None:
        with self._lock:
            stored = self._sessions.get(session_id)
            return deepcopy(stored) if stored is not None else None

    def update_session_where(
        self,
        session_id: int,
        predicate: SessionPredicate,
        patch: Mapping[str, object],
    ) -> QuizSession | None:
        """Apply ``patch`` if the session exists and ``predicate`` accepts it.

        Returns the updated session, or None when nothing was updated.
        """
        illegal = _IMMUTABLE_SESSION_FIELDS.intersection(patch)
        if illegal:
            raise ValueError(f"Cannot patch immutable session fields: {sorted(illegal)}")
        with self._lock:
            stored = self._sessions.get(session_id)
            if stored is None or not predicate(deepcopy(stored)):
                return None
            updated = replace(stored, **deepcopy(dict(patch)), version=stored.version + 1)
            self._sessions[session_id] = updated
            return deepcopy(updated)

    def list_sessions(self, predicate: SessionPredicate | None = None) -> list[QuizSession]:
        with self._lock:
            snapshot = [deepcopy(session) for session in self._sessions.values()]
        if predicate is None:
            return snapshot
        return [session for session in snapshot if predicate(session)]

    # --- Results ---

    def insert_result(self, result: QuizResult) -> QuizResult:
        with self._lock:
            self._result_counter += 1
            stored = replace(result, id=self._result_counter)
            self._results[stored.id] = stored
            return stored

    def get_result(self, result_id: int) -> QuizResult | None:
        with self._lock:
            return self._results.get(result_id)

    def list_results(self, predicate: ResultPredicate | None = None) -> list[QuizResult]:
        with self._lock:
            snapshot = list(self._results.values())
        if predicate is None:
            return snapshot
        return [result for result in snapshot if predicate(result)]
