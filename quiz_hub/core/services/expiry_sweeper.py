"""Periodic job that force-closes quizzes older than their time-to-live."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from apscheduler.schedulers.background import BackgroundScheduler

from quiz_hub.constants.quiz_constants import SESSION_TTL_SECONDS, SWEEP_INTERVAL_SECONDS
from quiz_hub.core.quiz_manager import QuizManager

logger = logging.getLogger(__name__)

_JOB_ID = "quiz-expiry-sweep"


@dataclass(slots=True)
class SweepReport:
    """Outcome of one sweep over the expired sessions."""

    closed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    warnings: list[int] = field(default_factory=list)


class ExpirySweeper:
    """Owns the single background job that closes expired quizzes.

    The job is registered with ``max_instances=1`` so a slow sweep is never
    overlapped by the next scheduled run.
    """

    def __init__(
        self,
        quiz_manager: QuizManager,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        interval_seconds: int = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._manager = quiz_manager
        self._ttl_seconds = ttl_seconds
        self._interval_seconds = interval_seconds
        self._scheduler: BackgroundScheduler | None = None

    def start(self) -> None:
        if self._scheduler is not None:
            return
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.sweep_once,
            "interval",
            seconds=self._interval_seconds,
            id=_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Expiry sweeper started (ttl=%ss, interval=%ss)", self._ttl_seconds, self._interval_seconds
        )

    def stop(self, wait: bool = True) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Expiry sweeper stopped")

    def is_running(self) -> bool:
        return self._scheduler is not None

    def sweep_once(self) -> SweepReport:
        """Close every expired session; one failure does not stop the rest."""
        report = SweepReport()
        for session in self._manager.find_expired_sessions(self._ttl_seconds):
            try:
                outcome = self._manager.force_close(session.id)
            except Exception:
                logger.exception("Failed to close expired quiz %s", session.id)
                report.failed.append(session.id)
                continue
            report.closed.append(session.id)
            if outcome.warning:
                report.warnings.append(session.id)
        if report.closed or report.failed:
            logger.info(
                "Expiry sweep closed %d quiz(zes), %d failure(s)", len(report.closed), len(report.failed)
            )
        return report
