"""
Funnel Notifications
====================
Fire-and-forget hooks for analytics/pixel tracking.
A failing notifier is logged and otherwise ignored.
"""

import logging
from typing import Any, Protocol

from .answers import AnswerSet, ContactInfo

logger = logging.getLogger(__name__)


class FunnelNotifier(Protocol):
    def form_started(self) -> None: ...

    def continue_clicked(self, step: int, answer: Any) -> None: ...

    def question_timer_reset(self, step: int) -> None: ...

    def form_submitted(self, answers: AnswerSet) -> None: ...

    def application_completed(self, contact: ContactInfo) -> None: ...


class LoggingNotifier:
    """Default notifier: writes funnel events to the log."""

    def form_started(self) -> None:
        logger.info("Form tracking started")

    def continue_clicked(self, step: int, answer: Any) -> None:
        logger.info("Continue clicked", extra={"step": step, "answer": answer})

    def question_timer_reset(self, step: int) -> None:
        logger.debug("Question timer reset", extra={"step": step})

    def form_submitted(self, answers: AnswerSet) -> None:
        logger.info("Form submitted", extra={"answered": answers.has_answered_questions()})

    def application_completed(self, contact: ContactInfo) -> None:
        logger.info("Application completed", extra={"email": contact.email})


def notify(notifier: FunnelNotifier, event: str, *args: Any) -> None:
    try:
        getattr(notifier, event)(*args)
    except Exception:
        logger.warning("Notifier failed on %s", event, exc_info=True)
