"""Domain models for the quiz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType

# Owners are identified account-wide by mail, participants by account id.
AccountId = NewType("AccountId", str)
ParticipantId = NewType("ParticipantId", str)


@dataclass(slots=True, frozen=True)
class CallerIdentity:
    """Already-authenticated principal forwarded by the gateway."""

    id: str
    mail: str

    @property
    def account_id(self) -> AccountId:
        return AccountId(self.mail)

    @property
    def participant_id(self) -> ParticipantId:
        return ParticipantId(str(self.id))


@dataclass(slots=True)
class QuizQuestion:
    """Multiple-choice question; options map a label such as "A" to its text."""

    id: int
    prompt: str
    options: dict[str, str]


@dataclass(slots=True, frozen=True)
class AnswerSelection:
    """One submitted answer: the option label chosen for a question."""

    question_id: int
    selected_option: str


@dataclass(slots=True)
class CompletionRecord:
    """Leaderboard entry embedded in the session once a participant submits."""

    participant_id: ParticipantId
    label: str
    score: int
    position: int = 0


@dataclass(slots=True)
class QuizSession:
    """One quiz instance. ``closed`` only ever goes from False to True."""

    id: int
    title: str
    owner: AccountId
    questions: list[QuizQuestion]
    answer_key: dict[int, str]
    created_at: datetime
    joined: list[ParticipantId] = field(default_factory=list)
    completed: list[CompletionRecord] = field(default_factory=list)
    closed: bool = False
    ranked_at: datetime | None = None
    version: int = 0


@dataclass(slots=True, frozen=True)
class QuizResult:
    """Graded submission. Written once, never updated."""

    id: int
    session_id: int
    session_title: str
    participant_id: ParticipantId
    participant_label: str
    score: int
    total_questions: int
    points: int
    elapsed_seconds: int
    submitted_answers: tuple[AnswerSelection, ...]
    submitted_at: datetime


@dataclass(slots=True, frozen=True)
class ScoreSummary:
    """Outcome of grading one submission.

    ``score`` and ``points`` are what gets persisted and ranked. The bonus
    fields depend on elapsed time and are informational only. ``time_bonus``
    is the number of seconds left in the bonus window; ``bonus_points`` adds a
    tenth of it, rounded down, to ``points``.
    """

    correct_count: int
    total_questions: int
    percentage: int
    points: int
    elapsed_seconds: int = 0
    time_bonus: int = 0
    bonus_points: int = 0
    percentage_points: float = 0.0


@dataclass(slots=True, frozen=True)
class GeneratedQuestionSet:
    """Payload returned by a question generator."""

    valid: bool
    title: str
    questions: list[QuizQuestion] = field(default_factory=list)
    answer_key: dict[int, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class CloseOutcome:
    session_id: int
    closed: bool
    ranked: bool
    warning: str | None = None


@dataclass(slots=True, frozen=True)
class PublicQuizView:
    """What any participant may see: no answer key, no results."""

    id: int
    title: str
    questions: list[QuizQuestion]
    closed: bool


@dataclass(slots=True, frozen=True)
class OwnerQuizInfo:
    session: QuizSession
    results: list[QuizResult]


@dataclass(slots=True, frozen=True)
class QuizAnalysis:
    session: QuizSession
    result: QuizResult


@dataclass(slots=True, frozen=True)
class CallerHistory:
    results: list[QuizResult]
    created_sessions: list[QuizSession]
