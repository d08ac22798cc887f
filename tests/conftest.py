from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from quiz_hub.core.models import CallerIdentity, GeneratedQuestionSet, QuizQuestion
from quiz_hub.core.quiz_manager import QuizManager
from quiz_hub.core.services.session_store import SessionStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeGenerator:
    """Returns a fixed two-question set unless told otherwise."""

    def __init__(self, question_set: GeneratedQuestionSet | None = None, error: Exception | None = None) -> None:
        self.question_set = question_set or two_question_set()
        self.error = error
        self.calls: list[tuple[str, int]] = []

    def generate(self, topic: str, count: int) -> GeneratedQuestionSet:
        self.calls.append((topic, count))
        if self.error is not None:
            raise self.error
        return self.question_set


def two_question_set(title: str = "Planets") -> GeneratedQuestionSet:
    return GeneratedQuestionSet(
        valid=True,
        title=title,
        questions=[
            QuizQuestion(id=1, prompt="Largest planet?", options={"A": "Jupiter", "B": "Mars"}),
            QuizQuestion(id=2, prompt="Closest to the sun?", options={"A": "Venus", "B": "Mercury"}),
        ],
        answer_key={1: "A", 2: "B"},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def manager(store: SessionStore, generator: FakeGenerator, clock: FakeClock) -> QuizManager:
    return QuizManager(store=store, generator=generator, clock=clock)


@pytest.fixture
def owner() -> CallerIdentity:
    return CallerIdentity(id="1", mail="owner@example.com")


@pytest.fixture
def alice() -> CallerIdentity:
    return CallerIdentity(id="10", mail="alice@example.com")


@pytest.fixture
def bob() -> CallerIdentity:
    return CallerIdentity(id="11", mail="bob@example.com")
