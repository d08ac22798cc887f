import json

import pytest
import requests

from quiz_hub.core import question_generator
from quiz_hub.core.errors import UpstreamGeneratorError, UpstreamTimeout
from quiz_hub.core.question_generator import (
    OpenRouterQuestionGenerator,
    QuestionSetFormatError,
    build_messages,
    parse_question_set,
)

VALID_REPLY = {
    "validity": "valid",
    "title": "Planets",
    "questions": [
        {"id": 1, "question": "Largest planet?", "options": {"A": "Jupiter", "B": "Mars"}},
        {"id": 2, "question": "Red planet?", "options": {"A": "Venus", "B": "Mars"}},
    ],
    "answers": [{"id": 1, "correct_option": "A"}, {"id": 2, "correct_option": "B"}],
}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def _envelope(content: str) -> dict:
    return {"choices": [{"message": {"content": content}}]}


def test_parse_valid_reply_with_surrounding_noise():
    content = "Sure! Here is your quiz:\n```json\n" + json.dumps(VALID_REPLY) + "\n```\nEnjoy."

    question_set = parse_question_set(content)

    assert question_set.valid
    assert question_set.title == "Planets"
    assert [question.id for question in question_set.questions] == [1, 2]
    assert question_set.questions[0].options == {"A": "Jupiter", "B": "Mars"}
    assert question_set.answer_key == {1: "A", 2: "B"}


def test_parse_answer_key_given_as_object():
    reply = dict(VALID_REPLY, answers={"1": "A", "2": "B"})

    assert parse_question_set(json.dumps(reply)).answer_key == {1: "A", 2: "B"}


def test_parse_invalid_marker():
    question_set = parse_question_set('{"validity": "invalid"}', fallback_title="topic")

    assert not question_set.valid
    assert question_set.title == "topic"


@pytest.mark.parametrize(
    "reply",
    [
        "no json here",
        "{not json}",
        json.dumps(dict(VALID_REPLY, questions=[])),
        json.dumps(dict(VALID_REPLY, answers=[{"id": 1, "correct_option": "A"}])),
        json.dumps(dict(VALID_REPLY, answers=[{"id": 1, "correct_option": "A"}, {"id": 2, "correct_option": "Z"}])),
        json.dumps(dict(VALID_REPLY, validity="maybe")),
        json.dumps({k: v for k, v in VALID_REPLY.items() if k != "answers"}),
    ],
)
def test_parse_rejects_malformed_replies(reply):
    with pytest.raises(QuestionSetFormatError):
        parse_question_set(reply)


def test_build_messages_mentions_topic_and_count():
    messages = build_messages("Rivers", 4)

    assert messages[0]["role"] == "system"
    assert 'Create a 4 question quiz about "Rivers"' in messages[1]["content"]


def test_generate_posts_to_openrouter(monkeypatch):
    captured = {}

    def fake_post(url, **kwargs):
        captured.update(url=url, headers=kwargs["headers"], body=kwargs["json"], timeout=kwargs["timeout"])
        return FakeResponse(_envelope(json.dumps(VALID_REPLY)))

    monkeypatch.setattr(question_generator.requests, "post", fake_post)
    generator = OpenRouterQuestionGenerator(api_key="secret", model="test-model", url="http://llm.test", timeout=5)

    question_set = generator.generate("Planets", 2)

    assert question_set.answer_key == {1: "A", 2: "B"}
    assert captured["url"] == "http://llm.test"
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["body"]["model"] == "test-model"
    assert captured["timeout"] == 5


@pytest.mark.parametrize(
    "behaviour, expected",
    [
        (requests.Timeout("slow"), UpstreamTimeout),
        (requests.ConnectionError("down"), UpstreamGeneratorError),
        (FakeResponse({}, status_code=503), UpstreamGeneratorError),
        (FakeResponse({"choices": []}), UpstreamGeneratorError),
        (FakeResponse(_envelope("not a quiz")), UpstreamGeneratorError),
        (FakeResponse(_envelope(None)), UpstreamGeneratorError),
    ],
)
def test_generate_translates_failures(monkeypatch, behaviour, expected):
    def fake_post(*args, **kwargs):
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour

    monkeypatch.setattr(question_generator.requests, "post", fake_post)
    generator = OpenRouterQuestionGenerator(api_key="secret")

    with pytest.raises(expected):
        generator.generate("Planets", 2)


def test_generator_requires_api_key():
    with pytest.raises(ValueError):
        OpenRouterQuestionGenerator(api_key="")
