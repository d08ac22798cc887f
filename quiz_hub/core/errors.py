"""Error kinds raised by the quiz session core.

Every error carries the HTTP status the API layer reports it with, so the
server can translate them in one place.
"""

from __future__ import annotations


class QuizServiceError(Exception):
    """Base class for all failures surfaced to callers."""

    status_code: int = 500
    default_message: str = "Quiz operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFound(QuizServiceError):
    """Session or result absent, or the caller is not allowed to see it."""

    status_code = 404
    default_message = "Quiz not found"


class SessionClosed(QuizServiceError):
    status_code = 409
    default_message = "Quiz is already closed"


class SessionStillOpen(QuizServiceError):
    status_code = 409
    default_message = "Quiz is currently running, wait for completion"


class ContentRejected(QuizServiceError):
    """The question generator flagged the topic as invalid or unsafe."""

    status_code = 400
    default_message = "Invalid content"


class UpstreamGeneratorError(QuizServiceError):
    status_code = 502
    default_message = "Quiz creation failed"


class UpstreamTimeout(QuizServiceError):
    status_code = 504
    default_message = "Upstream service timed out"


class MalformedInput(QuizServiceError):
    status_code = 422
    default_message = "Malformed answers"


class NoQuestions(QuizServiceError):
    status_code = 422
    default_message = "Quiz has no questions"


class StoreConflict(QuizServiceError):
    """A conditional update kept losing the race after bounded retries."""

    status_code = 409
    default_message = "Quiz was modified concurrently, please retry"
