"""Shared fixtures for funnel tests."""

from datetime import datetime, timezone

import pytest

from leadfunnel.attribution.context import VisitorContext
from leadfunnel.config import RedirectSettings, WizardSettings
from leadfunnel.core.answers import AnswerSet
from leadfunnel.core.wizard import FunnelWizard
from leadfunnel.storage.kv import MemoryKeyValueStore
from leadfunnel.storage.snapshot import SnapshotStore
from leadfunnel.submission.orchestrator import SubmissionOrchestrator
from leadfunnel.submission.sinks import DeliveryResult

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class RecordingSink:
    """Sink double: remembers every payload, answers with a canned result."""

    def __init__(self, name: str, ok: bool = True, raises: Exception | None = None):
        self.name = name
        self.ok = ok
        self.raises = raises
        self.payloads: list[dict] = []

    async def deliver(self, payload: dict) -> DeliveryResult:
        self.payloads.append(payload)
        if self.raises is not None:
            raise self.raises
        return DeliveryResult(self.name, ok=self.ok, status_code=200 if self.ok else 500,
                              error=None if self.ok else "HTTP 500")


class RecordingNotifier:
    def __init__(self):
        self.events: list[tuple] = []

    def form_started(self):
        self.events.append(("form_started",))

    def continue_clicked(self, step, answer):
        self.events.append(("continue_clicked", step, answer))

    def question_timer_reset(self, step):
        self.events.append(("question_timer_reset", step))

    def form_submitted(self, answers):
        self.events.append(("form_submitted",))

    def application_completed(self, contact):
        self.events.append(("application_completed", contact.email))

    def named(self, name: str) -> list[tuple]:
        return [event for event in self.events if event[0] == name]


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def qualified_answers(**overrides) -> AnswerSet:
    answers = AnswerSet(
        first_name="Jane",
        last_name="Doe",
        email="jane@x.com",
        phone="5551234567",
        available_capital="$30,000–$50,000",
        ready_to_move_forward="Within 30 days",
        strategy_call_commitment="Yes",
    )
    for name, value in overrides.items():
        setattr(answers, name, value)
    return answers


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return SnapshotStore(kv)


@pytest.fixture
def api_sink():
    return RecordingSink("api")


@pytest.fixture
def webhook_sink():
    return RecordingSink("webhook")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def orchestrator(store, api_sink, webhook_sink, notifier):
    return SubmissionOrchestrator(
        store,
        api_sink,
        webhook_sink,
        RedirectSettings(),
        notifier=notifier,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def wizard_settings():
    return WizardSettings(auto_advance_delay=0.6, autosave_delay=0.0)


@pytest.fixture
def mount(store, orchestrator, notifier, sleep, wizard_settings):
    """Factory: open a wizard against the shared in-memory store."""

    async def _mount(context: VisitorContext | None = None, **kwargs) -> FunnelWizard:
        kwargs.setdefault("settings", wizard_settings)
        kwargs.setdefault("notifier", notifier)
        kwargs.setdefault("sleep", sleep)
        return await FunnelWizard.mount(store, orchestrator, context or VisitorContext(), **kwargs)

    return _mount
