"""FastAPI server exposing the quiz endpoints.

Authentication happens upstream: the gateway verifies the caller's token and
forwards the identity in the ``X-User-Id`` and ``X-User-Mail`` headers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import uvicorn

from quiz_hub.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from quiz_hub.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT, USER_ID_HEADER, USER_MAIL_HEADER
from quiz_hub.constants.quiz_constants import DEFAULT_QUESTION_COUNT, MAX_QUESTION_COUNT
from quiz_hub.core.errors import QuizServiceError
from quiz_hub.core.models import (
    AnswerSelection,
    CallerIdentity,
    QuizQuestion,
    QuizResult,
    QuizSession,
    ScoreSummary,
)
from quiz_hub.core.prompt_renderer import renderer
from quiz_hub.core.quiz_manager import QuizManager
from quiz_hub.core.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    """Accepts both ``quizCode`` and ``quiz_code`` style field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateQuizPayload(_Payload):
    title: str = Field(min_length=1)
    questions: int = Field(default=DEFAULT_QUESTION_COUNT, ge=1, le=MAX_QUESTION_COUNT)


class QuizCodePayload(_Payload):
    quiz_code: int


class AnswerPayload(_Payload):
    """One answer; types are strict so "1" is rejected rather than coerced."""

    question_id: int = Field(strict=True)
    selected_option: str = Field(strict=True)


class SubmitPayload(_Payload):
    quiz_code: int
    answers: list[AnswerPayload]
    start_time: datetime | None = None
    end_time: datetime | None = None


class AnalysisPayload(_Payload):
    quiz_code: int
    result_id: int = Field(alias="qid")


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def get_caller(
    user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    user_mail: str | None = Header(default=None, alias=USER_MAIL_HEADER),
) -> CallerIdentity:
    if not user_id or not user_mail:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return CallerIdentity(id=user_id.strip(), mail=user_mail.strip())


def create_api_app(quiz_manager: QuizManager, sweeper: ExpirySweeper | None = None) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager.

    When a sweeper is given it is started and stopped with the application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if sweeper is not None:
            sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop()

    app = FastAPI(title=APP_NAME, version=APP_VERSION, description=APP_ABOUT_TEXT, lifespan=lifespan)
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.exception_handler(QuizServiceError)
    async def handle_quiz_error(request: Request, exc: QuizServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.message})

    @app.get("/ping")
    def health_check() -> dict[str, object]:
        return {"ok": True}

    @app.post("/create-quiz", status_code=201)
    def create_quiz(
        payload: CreateQuizPayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.create_quiz(caller, payload.title, payload.questions)
        return {"ok": True, "quizCode": session.id}

    @app.post("/join-quiz")
    def join_quiz(
        payload: QuizCodePayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        newly_joined = manager.join_quiz(payload.quiz_code, caller.participant_id)
        return {"ok": True, "joined": newly_joined}

    @app.post("/quiz")
    def get_quiz(
        payload: QuizCodePayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        view = manager.get_public_view(payload.quiz_code)
        return {
            "ok": True,
            "quiz": {
                "id": view.id,
                "title": view.title,
                "closed": view.closed,
                "questions": [
                    {**_question_to_dict(question), **renderer.render_question(question)}
                    for question in view.questions
                ],
            },
        }

    @app.post("/submit-ans")
    def submit_answers(
        payload: SubmitPayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        answers = [
            AnswerSelection(question_id=answer.question_id, selected_option=answer.selected_option)
            for answer in payload.answers
        ]
        summary = manager.submit_answers(
            payload.quiz_code,
            caller,
            answers,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
        return {"ok": True, **_summary_to_dict(summary)}

    @app.post("/close-quiz")
    def close_quiz(
        payload: QuizCodePayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        outcome = manager.close_quiz(payload.quiz_code, caller)
        body: dict[str, object] = {
            "ok": True,
            "message": "Quiz closed successfully",
            "ranked": outcome.ranked,
        }
        if outcome.warning:
            body["warning"] = outcome.warning
        return body

    @app.post("/qzinfo")
    def get_quiz_info(
        payload: QuizCodePayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        info = manager.get_owner_info(payload.quiz_code, caller)
        return {
            "ok": True,
            "data": {
                **_session_to_dict(info.session),
                "results": [_result_to_dict(result) for result in info.results],
            },
        }

    @app.post("/analysis")
    def get_analysis(
        payload: AnalysisPayload,
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        analysis = manager.get_analysis(payload.quiz_code, payload.result_id, caller)
        session = analysis.session
        return {
            "ok": True,
            "quizInfo": {
                "title": session.title,
                "questions": [_question_to_dict(question) for question in session.questions],
                "answers": _answer_key_to_list(session.answer_key),
                "created_time": session.created_at.isoformat(),
            },
            "resdata": _result_to_dict(analysis.result),
        }

    @app.get("/history")
    def get_history(
        caller: CallerIdentity = Depends(get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        history = manager.get_history(caller)
        return {
            "ok": True,
            "quizResults": [_result_to_dict(result) for result in history.results],
            "createdQuizzes": [_session_to_dict(session) for session in history.created_sessions],
        }

    return app


def run_api_server(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve ``app`` with uvicorn until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    server.run()


def _question_to_dict(question: QuizQuestion) -> dict[str, object]:
    return {"id": question.id, "question": question.prompt, "options": dict(question.options)}


def _answer_key_to_list(answer_key: dict[int, str]) -> list[dict[str, object]]:
    return [{"id": question_id, "correct_option": label} for question_id, label in sorted(answer_key.items())]


def _session_to_dict(session: QuizSession) -> dict[str, object]:
    return {
        "id": session.id,
        "title": session.title,
        "created_mail": session.owner,
        "questions": [_question_to_dict(question) for question in session.questions],
        "answers": _answer_key_to_list(session.answer_key),
        "joined_ppl": list(session.joined),
        "completed_ppl": [
            {
                "id": record.participant_id,
                "name": record.label,
                "score": record.score,
                "position": record.position,
            }
            for record in session.completed
        ],
        "closed": session.closed,
        "crt_tm": session.created_at.isoformat(),
    }


def _result_to_dict(result: QuizResult) -> dict[str, object]:
    return {
        "id": result.id,
        "quiz_id": result.session_id,
        "quiz_title": result.session_title,
        "user_id": result.participant_id,
        "user_mail": result.participant_label,
        "score": result.score,
        "total_questions": result.total_questions,
        "points": result.points,
        "time_taken": result.elapsed_seconds,
        "given_answer": [
            {"question_id": answer.question_id, "selected_option": answer.selected_option}
            for answer in result.submitted_answers
        ],
        "submitted_at": result.submitted_at.isoformat(),
    }


def _summary_to_dict(summary: ScoreSummary) -> dict[str, object]:
    return {
        "score": summary.correct_count,
        "total": summary.total_questions,
        "percentage": summary.percentage,
        "points": summary.points,
        "timeTaken": summary.elapsed_seconds,
        "timeBonus": summary.time_bonus,
        "bonusPoints": summary.bonus_points,
        "percentagePoints": summary.percentage_points,
    }
