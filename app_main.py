"""Application entry point for the quiz_hub service."""

from __future__ import annotations

import sys

from quiz_hub.core.question_generator import OpenRouterQuestionGenerator
from quiz_hub.core.quiz_manager import QuizManager
from quiz_hub.core.services.expiry_sweeper import ExpirySweeper
from quiz_hub.core.services.session_store import SessionStore
from quiz_hub.server.api_server import create_api_app, run_api_server
from quiz_hub.utils.logging_config import configure_logging
from quiz_hub.utils.settings import SettingsError, load_settings


def main() -> None:
    """Load settings, wire the services and serve the API until interrupted."""
    try:
        settings = load_settings()
    except SettingsError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    logger = configure_logging(settings.log_level)
    if not settings.openrouter_api_key:
        logger.error("Missing env var: OPENROUTER_API_KEY")
        sys.exit(1)

    generator = OpenRouterQuestionGenerator(
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        url=settings.openrouter_url,
        timeout=settings.generator_timeout_seconds,
    )
    quiz_manager = QuizManager(store=SessionStore(), generator=generator)
    sweeper = ExpirySweeper(
        quiz_manager,
        ttl_seconds=settings.session_ttl_seconds,
        interval_seconds=settings.sweep_interval_seconds,
    )
    app = create_api_app(quiz_manager, sweeper=sweeper)

    logger.info("Starting quiz_hub on %s:%d", settings.host, settings.port)
    run_api_server(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
