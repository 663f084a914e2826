"""
Submission Orchestrator
=======================
Final step of the funnel: resolve contact → validate → deliver to every
sink → clear saved answers → redirect.

Sink failures never stop the run, and an unexpected error anywhere still
ends in a redirect. Only validation problems reach the caller, as
SubmissionValidationError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ..attribution.context import UtmParams
from ..attribution.variant import LandingVariant
from ..config import RedirectSettings
from ..core.answers import AnswerSet, ContactInfo, InitialContact
from ..core.formatting import is_valid_email
from ..core.notifier import FunnelNotifier, LoggingNotifier, notify
from ..core.qualification import disqualification_reason, is_disqualified
from ..errors import SubmissionValidationError
from ..storage.snapshot import SnapshotStore
from .payload import PLACEHOLDER_EMAIL, build_disqualification_payload, build_lead_payload
from .redirects import RedirectTarget, booking_redirect, disqualified_redirect, entry_redirect
from .sinks import DeliveryResult, Sink

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    redirect: RedirectTarget
    disqualified: bool
    contact: ContactInfo = field(default_factory=ContactInfo)
    deliveries: list[DeliveryResult] = field(default_factory=list)
    recovered: bool = False   # an unexpected error was swallowed on the way

    @property
    def delivered(self) -> bool:
        return bool(self.deliveries) and all(d.ok for d in self.deliveries)

    @property
    def partial(self) -> bool:
        return any(d.ok for d in self.deliveries) and not self.delivered


def merge_contact(
    answers: AnswerSet,
    initial: Optional[InitialContact],
    fallback: ContactInfo,
) -> ContactInfo:
    """
    Most complete contact triple, by priority:
    in-memory answers > initial contact snapshot > same-session fallback.
    """
    initial = initial or InitialContact()
    initial_first, initial_last = initial.split_name()
    return ContactInfo(
        first_name=answers.first_name or initial_first or fallback.first_name,
        last_name=answers.last_name or initial_last or fallback.last_name,
        full_name=initial.full_name or answers.full_name or fallback.full_name,
        email=answers.email or initial.email or fallback.email,
        phone=answers.phone or initial.phone or fallback.phone,
    )


class SubmissionOrchestrator:
    """Full run: contact → validate → API → webhook → clear → redirect"""

    def __init__(
        self,
        store: SnapshotStore,
        api_sink: Sink,
        webhook_sink: Sink,
        redirects: Optional[RedirectSettings] = None,
        notifier: Optional[FunnelNotifier] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.api_sink = api_sink
        self.webhook_sink = webhook_sink
        self.redirects = redirects or RedirectSettings()
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock

    # ── Redirects ───────────────────────────────────────────────────────────

    def disqualified_redirect(self) -> RedirectTarget:
        return disqualified_redirect(self.redirects)

    def entry_redirect(self) -> RedirectTarget:
        return entry_redirect(self.redirects)

    def redirect_for(self, answers: AnswerSet, contact: ContactInfo) -> RedirectTarget:
        if is_disqualified(answers):
            return self.disqualified_redirect()
        return booking_redirect(self.redirects, contact)

    # ── Submission ──────────────────────────────────────────────────────────

    async def resolve_contact(self, answers: AnswerSet, fallback: ContactInfo) -> ContactInfo:
        initial = await self.store.load_initial_contact()
        contact = merge_contact(answers, initial, fallback)
        if not contact.email:
            logger.info("No email found, submitting with placeholder")
            contact.email = PLACEHOLDER_EMAIL
        return contact

    @staticmethod
    def validate(answers: AnswerSet, contact: ContactInfo) -> None:
        if not is_valid_email(contact.email):
            raise SubmissionValidationError("A valid email address is required to continue")
        if not answers.has_answered_questions():
            raise SubmissionValidationError("Please answer at least one question")

    async def _deliver(self, sink: Sink, payload: dict) -> DeliveryResult:
        try:
            return await sink.deliver(payload)
        except Exception as exc:
            logger.exception("%s delivery raised", sink.name)
            return DeliveryResult(sink.name, ok=False, error=str(exc) or type(exc).__name__)

    async def submit(
        self,
        answers: AnswerSet,
        variant: LandingVariant,
        utm: Optional[UtmParams] = None,
        fallback: Optional[ContactInfo] = None,
        page_url: str = "",
    ) -> SubmissionOutcome:
        """
        Deliver the final answers and decide where the visitor goes next.
        Raises SubmissionValidationError only; everything else is absorbed.
        """
        answers = answers.copy()
        utm = utm or UtmParams()
        fallback = fallback or ContactInfo()
        contact: Optional[ContactInfo] = None
        deliveries: list[DeliveryResult] = []

        try:
            # 1. Contact details from every source we have
            contact = await self.resolve_contact(answers, fallback)

            # 2. Validate
            self.validate(answers, contact)

            # 3. Deliver, API first then webhook
            disqualified = is_disqualified(answers)
            payload = build_lead_payload(
                answers, contact, variant, utm,
                disqualified=disqualified, now=self.clock(), page_url=page_url,
            )
            logger.info(
                "Submitting lead",
                extra={"variant": variant.variant.value, "disqualified": disqualified},
            )
            for sink in (self.api_sink, self.webhook_sink):
                deliveries.append(await self._deliver(sink, payload))

            # 4. Saved answers are done with, whatever the sinks said
            await self.store.clear_answers()

            # 5. Redirect
            notify(self.notifier, "application_completed", contact)
            redirect = self.redirect_for(answers, contact)
            logger.info(
                "Submission summary",
                extra={
                    "deliveries": {d.sink: d.ok for d in deliveries},
                    "redirect": redirect.url,
                },
            )
            return SubmissionOutcome(
                redirect=redirect,
                disqualified=disqualified,
                contact=contact,
                deliveries=deliveries,
            )

        except SubmissionValidationError:
            raise

        except Exception:
            logger.exception("Critical error during form submission")
            # The attempt is over either way; don't resume it on the next visit
            await self.store.clear_answers()
            return self._recover(answers, contact, fallback, deliveries)

    def _recover(
        self,
        answers: AnswerSet,
        contact: Optional[ContactInfo],
        fallback: ContactInfo,
        deliveries: list[DeliveryResult],
    ) -> SubmissionOutcome:
        """Re-derive a redirect from whatever survived."""
        contact = contact or merge_contact(answers, None, fallback)
        try:
            disqualified = is_disqualified(answers)
            redirect = self.redirect_for(answers, contact)
        except Exception:
            logger.exception("Failed to derive redirect after critical error")
            disqualified = False
            redirect = RedirectTarget(self.redirects.booking_path)
        return SubmissionOutcome(
            redirect=redirect,
            disqualified=disqualified,
            contact=contact,
            deliveries=deliveries,
            recovered=True,
        )

    # ── Disqualification ────────────────────────────────────────────────────

    async def report_disqualification(
        self,
        answers: AnswerSet,
        variant: LandingVariant,
        *,
        step: int,
        utm: Optional[UtmParams] = None,
        reason: Optional[str] = None,
        page_url: str = "",
    ) -> DeliveryResult:
        """Send the partial answers of a disqualified visitor to the webhook."""
        try:
            if reason is None:
                found = disqualification_reason(answers)
                reason = found[1] if found else ""
            payload = build_disqualification_payload(
                answers, variant, utm or UtmParams(),
                reason=reason, step=step, now=self.clock(), page_url=page_url,
            )
        except Exception as exc:
            logger.exception("Could not build disqualification payload")
            return DeliveryResult(self.webhook_sink.name, ok=False, error=str(exc))
        logger.info("Sending disqualified lead", extra={"reason": reason, "step": step})
        return await self._deliver(self.webhook_sink, payload)
