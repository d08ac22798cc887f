"""Question set generation through an LLM chat-completions endpoint.

Expected reply format (a single JSON document, possibly wrapped in prose or
code fences that are stripped before parsing):

    {
      "validity": "valid",
      "title": "Solar system",
      "questions": [
        {"id": 1, "question": "Which planet is largest?",
         "options": {"A": "Mars", "B": "Jupiter", "C": "Venus", "D": "Earth"}}
      ],
      "answers": [{"id": 1, "correct_option": "B"}]
    }

``answers`` may also be an object such as ``{"1": "B"}``. A ``validity`` of
``"invalid"`` means the model refused the topic.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import requests

from quiz_hub.constants.network_constants import (
    GENERATOR_TIMEOUT_SECONDS,
    OPENROUTER_MODEL,
    OPENROUTER_URL,
)
from quiz_hub.core.errors import UpstreamGeneratorError, UpstreamTimeout
from quiz_hub.core.models import GeneratedQuestionSet, QuizQuestion

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
_LEADING_NOISE = re.compile(r"^[^{]*")
_TRAILING_NOISE = re.compile(r"[^}]*$")


class QuestionGenerator(Protocol):
    def generate(self, topic: str, count: int) -> GeneratedQuestionSet: ...


class QuestionSetFormatError(Exception):
    """Raised when a generated question set cannot be parsed."""


def parse_question_set(content: str, fallback_title: str = "") -> GeneratedQuestionSet:
    """Parse a raw model reply into a validated question set."""
    cleaned = _FENCE_PATTERN.sub("", content).strip()
    cleaned = _TRAILING_NOISE.sub("", _LEADING_NOISE.sub("", cleaned))
    if not cleaned:
        raise QuestionSetFormatError("Reply did not contain a JSON object.")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise QuestionSetFormatError(f"Reply is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise QuestionSetFormatError("Reply must be a JSON object.")

    title = payload.get("title") or fallback_title
    if not isinstance(title, str):
        raise QuestionSetFormatError("Title must be a string.")

    validity = payload.get("validity", "valid")
    if validity == "invalid":
        return GeneratedQuestionSet(valid=False, title=title)
    if validity != "valid":
        raise QuestionSetFormatError(f"Unknown validity marker {validity!r}.")

    raw_questions = payload.get("questions")
    if not isinstance(raw_questions, list) or not raw_questions:
        raise QuestionSetFormatError("Reply must contain a non-empty 'questions' list.")
    questions = [_parse_question(raw) for raw in raw_questions]

    question_ids = [question.id for question in questions]
    if len(set(question_ids)) != len(question_ids):
        raise QuestionSetFormatError("Question ids must be unique.")

    answer_key = _parse_answer_key(payload.get("answers"))
    if set(answer_key) != set(question_ids):
        raise QuestionSetFormatError("Answer key must cover exactly the generated questions.")
    for question in questions:
        if answer_key[question.id] not in question.options:
            raise QuestionSetFormatError(
                f"Correct option for question {question.id} is not one of its options."
            )

    return GeneratedQuestionSet(valid=True, title=title.strip(), questions=questions, answer_key=answer_key)


def _parse_question(raw: Any) -> QuizQuestion:
    if not isinstance(raw, dict):
        raise QuestionSetFormatError("Each question must be an object.")
    question_id = _parse_question_id(raw.get("id"))
    prompt = raw.get("question")
    if not isinstance(prompt, str) or not prompt.strip():
        raise QuestionSetFormatError(f"Question {question_id} has no text.")
    options = raw.get("options")
    if not isinstance(options, dict) or not options:
        raise QuestionSetFormatError(f"Question {question_id} has no options.")
    cleaned: dict[str, str] = {}
    for label, text in options.items():
        if not isinstance(text, str) or not text.strip() or not label.strip():
            raise QuestionSetFormatError(f"Question {question_id} has an empty option.")
        cleaned[label.strip()] = text.strip()
    return QuizQuestion(id=question_id, prompt=prompt.strip(), options=cleaned)


def _parse_answer_key(raw: Any) -> dict[int, str]:
    if isinstance(raw, list):
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict):
                raise QuestionSetFormatError("Each answer must be an object.")
            pairs.append((entry.get("id"), entry.get("correct_option")))
    elif isinstance(raw, dict):
        pairs = list(raw.items())
    else:
        raise QuestionSetFormatError("Reply must contain an 'answers' list or object.")

    answer_key: dict[int, str] = {}
    for raw_id, label in pairs:
        question_id = _parse_question_id(raw_id)
        if not isinstance(label, str) or not label.strip():
            raise QuestionSetFormatError(f"Answer for question {question_id} is missing.")
        answer_key[question_id] = label.strip()
    return answer_key


def _parse_question_id(raw: Any) -> int:
    # JSON object keys are always strings, so digit strings are accepted here.
    if isinstance(raw, bool):
        raise QuestionSetFormatError(f"Invalid question id {raw!r}.")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise QuestionSetFormatError(f"Invalid question id {raw!r}.")


class OpenRouterQuestionGenerator:
    """Generates question sets through the OpenRouter chat-completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = OPENROUTER_MODEL,
        url: str = OPENROUTER_URL,
        timeout: float = GENERATOR_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ValueError("An OpenRouter API key is required.")
        self._api_key = api_key
        self._model = model
        self._url = url
        self._timeout = timeout

    def generate(self, topic: str, count: int) -> GeneratedQuestionSet:
        try:
            response = requests.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={"model": self._model, "messages": build_messages(topic, count)},
                timeout=self._timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.Timeout as exc:
            logger.warning("Question generator timed out for topic %r", topic)
            raise UpstreamTimeout("Question generator timed out") from exc
        except requests.RequestException as exc:
            logger.error("Question generator request failed: %s", exc)
            raise UpstreamGeneratorError() from exc
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Question generator returned an unexpected envelope: %s", exc)
            raise UpstreamGeneratorError() from exc

        if not isinstance(content, str):
            raise UpstreamGeneratorError("Question generator returned no content")
        try:
            return parse_question_set(content, fallback_title=topic)
        except QuestionSetFormatError as exc:
            logger.error("Question generator returned malformed content: %s", exc)
            raise UpstreamGeneratorError() from exc


def build_messages(topic: str, count: int) -> list[dict[str, str]]:
    """Chat messages asking the model for ``count`` questions about ``topic``."""
    example = {
        "validity": "valid",
        "title": topic,
        "questions": [
            {
                "id": 1,
                "question": "Question text?",
                "options": {"A": "Option 1", "B": "Option 2", "C": "Option 3", "D": "Option 4"},
            }
        ],
        "answers": [{"id": 1, "correct_option": "A"}],
    }
    return [
        {"role": "system", "content": "You are a quiz creator. Respond with only valid JSON."},
        {
            "role": "user",
            "content": (
                f'Create a {count} question quiz about "{topic}".\n\n'
                f"Respond with this exact JSON format:\n{json.dumps(example, indent=2)}\n\n"
                'If inappropriate content, set validity to "invalid".'
            ),
        },
    ]
