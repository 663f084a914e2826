"""
Questionnaire Wizard
====================
Drives one visitor through the 11 steps. Every move goes through
apply_event() and the transition table in funnel_states; an event that
is not allowed right now is ignored, never an error.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from ..attribution.context import UtmParams, VisitorContext
from ..attribution.tracking import TrackingCollector
from ..attribution.variant import UNKNOWN_VARIANT, LandingVariant, VariantResolver
from ..config import WizardSettings
from ..storage.autosave import Debouncer
from ..storage.snapshot import SnapshotStore
from ..submission.orchestrator import SubmissionOrchestrator, SubmissionOutcome
from ..submission.redirects import RedirectTarget
from ..errors import SubmissionValidationError
from .answers import AnswerSet, AutoFillData, ContactInfo, InitialContact
from .formatting import format_phone
from .funnel_states import (
    TERMINAL_PHASES,
    Effect,
    WizardEvent,
    WizardPhase,
    WizardState,
    apply_transition,
    next_transition,
)
from .notifier import FunnelNotifier, LoggingNotifier, notify
from .qualification import would_disqualify
from .questions import (
    FIRST_STEP,
    LAST_STEP,
    MULTI_SELECT,
    OTHER_OPTION,
    SINGLE_SELECT,
    STEP_FIELDS,
    Question,
    Step,
    is_valid_option,
)
from .validation import step_has_stored_answer

logger = logging.getLogger(__name__)

AutoFillSource = Callable[[], Awaitable[AutoFillData]]

TEXT_FIELDS = {"firstName", "lastName", "email", "confirmEmail", "phone", "otherSupportNeeded"}

# Auto-advance stops before the email step; typing needs an explicit Continue
AUTO_ADVANCE_BEFORE = Step.EMAIL


def resume_step(stored: AnswerSet) -> int:
    """
    First unanswered step, counting only the unbroken run of answered steps
    from step 1, capped at the last. Prefilled contact details alone never
    skip the questionnaire.
    """
    step = FIRST_STEP
    for candidate in Step:
        if not step_has_stored_answer(candidate, stored):
            break
        step = candidate + 1
    return min(step, LAST_STEP)


class FunnelWizard:
    def __init__(
        self,
        store: SnapshotStore,
        orchestrator: SubmissionOrchestrator,
        *,
        settings: Optional[WizardSettings] = None,
        notifier: Optional[FunnelNotifier] = None,
        context: Optional[VisitorContext] = None,
        variant: LandingVariant = UNKNOWN_VARIANT,
        answers: Optional[AnswerSet] = None,
        step: int = FIRST_STEP,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.settings = settings or WizardSettings()
        self.notifier = notifier or LoggingNotifier()
        self.context = context or VisitorContext()
        self.utm = UtmParams.from_query(self.context.query)
        self.variant = variant
        self.answers = answers or AnswerSet()
        self.state = WizardState(step=step)
        self.history: list[dict[str, Any]] = []
        self.redirect: Optional[RedirectTarget] = None
        self.init_error: Optional[str] = None
        self._sleep = sleep
        self._autosave = Debouncer(self.settings.autosave_delay, self._save)

    # ── Mount ───────────────────────────────────────────────────────────────

    @classmethod
    async def mount(
        cls,
        store: SnapshotStore,
        orchestrator: SubmissionOrchestrator,
        context: VisitorContext,
        *,
        settings: Optional[WizardSettings] = None,
        notifier: Optional[FunnelNotifier] = None,
        autofill: Optional[AutoFillSource] = None,
        tracking: Optional[TrackingCollector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> "FunnelWizard":
        """
        Open the questionnaire for a visitor: resolve attribution, restore
        saved answers, pick the resume step.

        If restoring blows up the wizard still comes back usable, at step 1
        with nothing answered, and `init_error` says what went wrong.
        """
        wizard = cls(store, orchestrator, settings=settings, notifier=notifier, context=context, sleep=sleep)
        notify(wizard.notifier, "form_started")
        wizard.variant = await VariantResolver(store).resolve(context)

        try:
            await wizard._restore(autofill)
        except Exception as exc:
            logger.exception("Critical error in form initialization")
            await wizard._hard_reset()
            wizard.init_error = str(exc) or "Unknown initialization error"

        if tracking is not None:
            try:
                await wizard.collect_tracking(tracking)
            except Exception:
                logger.warning("Tracking collection failed", exc_info=True)

        logger.info(
            "Form initialized",
            extra={
                "step": wizard.step,
                "variant": wizard.variant.variant.value,
                "path": wizard.variant.path,
                "email": "present" if wizard.answers.email else "missing",
            },
        )
        return wizard

    async def _restore(self, autofill: Optional[AutoFillSource]) -> None:
        stored = await self.store.load_answers()
        initial = await self.store.load_initial_contact()
        query = self.context.query
        saved = stored or AnswerSet()
        initial = initial or InitialContact()

        first_name = query.get("firstName") or saved.first_name
        last_name = query.get("lastName") or saved.last_name
        for full_name in (initial.full_name, query.get("fullName", "")):
            if first_name and last_name:
                break
            split_first, split_last = InitialContact(full_name=full_name).split_name()
            first_name = first_name or split_first
            last_name = last_name or split_last

        answers = saved.copy()
        answers.first_name = first_name
        answers.last_name = last_name
        answers.email = query.get("email") or saved.email or initial.email
        answers.phone = query.get("phone") or saved.phone or initial.phone
        answers.ab_variant = self.variant.variant.value

        if autofill is not None:
            await self._apply_autofill(answers, autofill)

        self.answers = answers
        self.state = WizardState(step=resume_step(stored) if stored else FIRST_STEP)

    async def _apply_autofill(self, answers: AnswerSet, autofill: AutoFillSource) -> None:
        try:
            data = await autofill()
        except Exception:
            logger.warning("Error auto-filling user data", exc_info=True)
            return
        if not (data.first_name or data.email):
            return
        answers.first_name = answers.first_name or data.first_name or ""
        answers.last_name = answers.last_name or data.last_name or ""
        answers.email = answers.email or data.email or ""
        answers.phone = answers.phone or data.phone or ""
        full_name = f"{data.first_name or ''} {data.last_name or ''}".strip()
        await self.store.save_initial_contact(
            InitialContact(full_name=full_name, email=data.email or "", phone=data.phone or "")
        )

    async def _hard_reset(self) -> None:
        self._autosave.cancel()
        self.answers = AnswerSet(ab_variant=self.variant.variant.value)
        self.state = WizardState()
        await self.store.clear_all()

    async def collect_tracking(self, collector: TrackingCollector) -> None:
        data = await collector.collect(self.context)
        for name in ("fbc", "fbp", "user_agent", "ip"):
            value = getattr(data, name)
            if value:
                setattr(self.answers, name, value)
        self._autosave.schedule()

    # ── State ───────────────────────────────────────────────────────────────

    @property
    def step(self) -> int:
        return self.state.step

    @property
    def phase(self) -> WizardPhase:
        return self.state.phase

    @property
    def busy(self) -> bool:
        """True while a submission is in flight; the submit button stays disabled."""
        return self.state.phase is WizardPhase.SUBMITTING

    @property
    def finished(self) -> bool:
        return self.state.phase in TERMINAL_PHASES

    def apply_event(self, event: WizardEvent, payload: Optional[dict] = None) -> Optional[WizardPhase]:
        """
        Apply an event if the table allows it. Returns the new phase, or None
        when the event does nothing in the current state.
        """
        transition = next_transition(self.state, event, self.answers)
        if transition is None:
            logger.debug("Ignored %s at step %s (%s)", event.value, self.step, self.phase.value)
            return None

        old = self.state
        self.state = apply_transition(old, transition)

        # Audit trail
        self.history.append({
            "from": old.phase.value,
            "from_step": old.step,
            "event": event.value,
            "to": self.state.phase.value,
            "to_step": self.state.step,
            "payload": payload or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        for effect in transition.effects:
            self._run_effect(effect, old)

        logger.debug(
            "%s/%s + %s → %s/%s",
            old.phase.value, old.step, event.value, self.state.phase.value, self.state.step,
        )
        return self.state.phase

    def _run_effect(self, effect: Effect, old: WizardState) -> None:
        if effect is Effect.NOTIFY_CONTINUE:
            notify(self.notifier, "continue_clicked", old.step, self.step_answer(old.step))
        elif effect is Effect.RESET_QUESTION_TIMER:
            notify(self.notifier, "question_timer_reset", self.step)
        elif effect is Effect.NOTIFY_SUBMITTED:
            notify(self.notifier, "form_submitted", self.answers.copy())
        elif effect is Effect.CANCEL_AUTOSAVE:
            self._autosave.cancel()

    def step_answer(self, step: int) -> Any:
        """What the visitor gave for `step`, as reported to analytics."""
        if step == Step.FULL_NAME:
            return self.answers.full_name
        questions = STEP_FIELDS.get(Step(step), ())
        if len(questions) != 1:
            return None
        value = self.answers.get(questions[0])
        return sorted(value) if isinstance(value, set) else value

    # ── Navigation ──────────────────────────────────────────────────────────

    def advance(self) -> bool:
        return self.apply_event(WizardEvent.ADVANCE) is not None

    def retreat(self) -> bool:
        return self.apply_event(WizardEvent.RETREAT) is not None

    # ── Answers ─────────────────────────────────────────────────────────────

    async def select_single(self, question: Question | str, value: str) -> None:
        """
        Record a single-select answer. A disqualifying answer ends the funnel
        right here; any other answer (except "Other") moves on by itself after
        the auto-advance delay.
        """
        if self.phase is not WizardPhase.ANSWERING:
            return
        try:
            question = Question(question)
        except ValueError:
            return
        if question not in SINGLE_SELECT or not is_valid_option(question, value):
            logger.debug("Ignored single-select %s=%r", question.value, value)
            return

        self.answers.set(question, value)
        self._autosave.schedule()
        step = self.step

        if would_disqualify(question, value):
            await self._disqualify(question, value, step)
            return

        if value == OTHER_OPTION or step >= AUTO_ADVANCE_BEFORE:
            return

        await self._sleep(self.settings.auto_advance_delay)
        # The visitor may have moved on (or back) while we waited
        if self.phase is WizardPhase.ANSWERING and self.step == step:
            self.advance()

    async def _disqualify(self, question: Question, value: str, step: int) -> None:
        self.apply_event(WizardEvent.DISQUALIFY, {"question": question.value, "value": value})
        result = await self.orchestrator.report_disqualification(
            self.answers.copy(),
            self.variant,
            step=step,
            utm=self.utm,
            reason=value,
            page_url=self.context.page_url,
        )
        if not result.ok:
            logger.warning("Disqualified lead not delivered: %s", result.error)
        self.redirect = self.orchestrator.disqualified_redirect()

    def toggle(self, question: Question | str, value: str) -> bool:
        """Add or remove one option of a multi-select question."""
        if self.phase is not WizardPhase.ANSWERING:
            return False
        try:
            question = Question(question)
        except ValueError:
            return False
        if question not in MULTI_SELECT or not is_valid_option(question, value):
            return False

        values: set[str] = self.answers.get(question)
        if value in values:
            values.discard(value)
        else:
            values.add(value)
        self._autosave.schedule()
        return True

    def set_text(self, name: str, value: str) -> bool:
        """Free-text contact fields and the "Other" elaboration."""
        if self.phase is not WizardPhase.ANSWERING or name not in TEXT_FIELDS:
            return False
        if name == "phone":
            value = format_phone(value)
        self.answers.set(name, value)
        self._autosave.schedule()
        return True

    # ── Submission ──────────────────────────────────────────────────────────

    async def submit(self) -> Optional[SubmissionOutcome]:
        """
        Deliver the lead from the last step. Does nothing if the step is
        incomplete or a submission is already running.
        Raises SubmissionValidationError with a message for the visitor.
        """
        if self.apply_event(WizardEvent.SUBMIT) is None:
            return None
        try:
            outcome = await self.orchestrator.submit(
                self.answers,
                self.variant,
                utm=self.utm,
                fallback=ContactInfo.from_query(self.context.query),
                page_url=self.context.page_url,
            )
        except SubmissionValidationError as exc:
            self.apply_event(WizardEvent.SUBMIT_REJECTED, {"error": str(exc)})
            raise
        self.redirect = outcome.redirect
        self.apply_event(WizardEvent.SUBMIT_FINISHED, {"redirect": outcome.redirect.url})
        return outcome

    # ── Recovery ────────────────────────────────────────────────────────────

    async def recover(self) -> bool:
        """Reset and continue: wipe saved state and start again at step 1."""
        if self.phase is not WizardPhase.ANSWERING:
            return False
        self._autosave.cancel()
        await self.store.clear_all()
        self.answers = AnswerSet(ab_variant=self.variant.variant.value)
        self.apply_event(WizardEvent.RESET)
        self.init_error = None
        logger.info("Form reset successfully")
        return True

    def start_over(self) -> RedirectTarget:
        """Leave the questionnaire for the entry page."""
        self._autosave.cancel()
        self.redirect = self.orchestrator.entry_redirect()
        return self.redirect

    # ── Persistence ─────────────────────────────────────────────────────────

    async def flush(self) -> None:
        await self._autosave.flush()

    async def _save(self) -> None:
        await self.store.save_answers(self.answers)
