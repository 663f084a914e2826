"""
Lead Funnel - API
=================
FastAPI application exposing the qualification questionnaire.
The page layer calls these endpoints and renders whatever step comes back.
"""

import logging
import time
import uuid
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Callable, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from .attribution.context import VisitorContext
from .attribution.tracking import TrackingCollector
from .config import Settings
from .core.validation import is_step_complete
from .core.wizard import FunnelWizard
from .db.database import create_engine, create_session_factory
from .errors import SubmissionValidationError
from .logs import install_logging
from .storage.kv import KeyValueStore, SqlKeyValueStore
from .storage.snapshot import SnapshotStore
from .submission.orchestrator import SubmissionOrchestrator
from .submission.sinks import build_sinks

logger = logging.getLogger(__name__)

KeyValueFactory = Callable[[str], KeyValueStore]


# ── Request/Response Models ───────────────────────────────────────────────────

class SessionCreateRequest(BaseModel):
    visitor_id: Optional[str] = None
    referrer: str = ""
    query: dict[str, str] = Field(default_factory=dict)
    cookies: dict[str, str] = Field(default_factory=dict)
    session_storage: dict[str, str] = Field(default_factory=dict)
    user_agent: str = ""
    page_url: str = ""


class SelectRequest(BaseModel):
    question: str
    value: str


class TextRequest(BaseModel):
    name: str
    value: str


class WizardView(BaseModel):
    session_id: str
    visitor_id: str
    step: int
    phase: str
    busy: bool
    can_continue: bool
    answers: dict
    variant: str
    path: str
    redirect: Optional[str] = None
    init_error: Optional[str] = None


# ── Live wizards ──────────────────────────────────────────────────────────────

class WizardRegistry:
    """
    Wizards currently open, by session id. Lost on restart.

    Sessions idle longer than `ttl` seconds expire, and beyond `max_sessions`
    the least recently used one is dropped. Answers survive either way in
    the visitor's storage, so reopening resumes where they left off.
    """

    def __init__(self, max_sessions: int = 10_000, ttl: float = 1800.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_sessions = max_sessions
        self.ttl = ttl
        self.clock = clock
        self.wizards: OrderedDict[str, tuple[str, FunnelWizard, float]] = OrderedDict()

    def add(self, visitor_id: str, wizard: FunnelWizard) -> str:
        self.prune()
        session_id = str(uuid.uuid4())
        self.wizards[session_id] = (visitor_id, wizard, self.clock())
        while len(self.wizards) > self.max_sessions:
            self.wizards.popitem(last=False)
        return session_id

    def get(self, session_id: str) -> tuple[str, FunnelWizard]:
        entry = self.wizards.get(session_id)
        if entry is None or self.clock() - entry[2] > self.ttl:
            self.wizards.pop(session_id, None)
            raise HTTPException(status_code=404, detail="Session not found")
        visitor_id, wizard, _ = entry
        self.wizards[session_id] = (visitor_id, wizard, self.clock())
        self.wizards.move_to_end(session_id)
        return visitor_id, wizard

    def discard(self, session_id: str) -> None:
        self.wizards.pop(session_id, None)

    def prune(self) -> None:
        """Drop expired sessions (oldest first, so stop at the first live one)."""
        now = self.clock()
        while self.wizards:
            session_id, (_, _, seen) = next(iter(self.wizards.items()))
            if now - seen <= self.ttl:
                break
            del self.wizards[session_id]


def _view(session_id: str, visitor_id: str, wizard: FunnelWizard) -> WizardView:
    return WizardView(
        session_id=session_id,
        visitor_id=visitor_id,
        step=wizard.step,
        phase=wizard.phase.value,
        busy=wizard.busy,
        can_continue=is_step_complete(wizard.step, wizard.answers),
        answers=wizard.answers.to_dict(),
        variant=wizard.variant.variant.value,
        path=wizard.variant.path,
        redirect=wizard.redirect.url if wizard.redirect else None,
        init_error=wizard.init_error,
    )


# ── Application ───────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    kv_factory: Optional[KeyValueFactory] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the API. `kv_factory` maps a visitor id to its storage; by default
    every visitor gets rows in the configured database.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if kv_factory is None:
            engine = create_engine(settings.database)
            session_factory = create_session_factory(engine)
            app.state.kv_factory = lambda visitor_id: SqlKeyValueStore(session_factory, visitor_id)
        else:
            app.state.kv_factory = kv_factory
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Lead Funnel",
        description="Qualification questionnaire with multi-sink lead delivery",
        version="1.0.0",
        lifespan=lifespan,
    )
    registry = WizardRegistry(settings.wizard.max_sessions, settings.wizard.session_ttl)
    api_sink, webhook_sink = build_sinks(settings.sinks, transport=transport)
    tracking = TrackingCollector(settings.tracking, transport=transport)

    def _final_view(session_id: str, visitor_id: str, wizard: FunnelWizard) -> WizardView:
        """View of the wizard; a finished wizard is forgotten right after."""
        view = _view(session_id, visitor_id, wizard)
        if wizard.finished:
            registry.discard(session_id)
        return view

    # ── Endpoints ─────────────────────────────────────────────────────────────

    @app.get("/")
    async def root():
        return {
            "service": "Lead Funnel",
            "version": "1.0.0",
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.post("/funnel/sessions", response_model=WizardView)
    async def create_session(body: SessionCreateRequest, request: Request):
        """
        Open the questionnaire for a visitor.

        Saved answers are restored, the landing variant is resolved and the
        visitor lands on the first step they have not answered yet.
        """
        visitor_id = body.visitor_id or str(uuid.uuid4())
        store = SnapshotStore(request.app.state.kv_factory(visitor_id), settings.wizard.max_snapshot_bytes)
        orchestrator = SubmissionOrchestrator(store, api_sink, webhook_sink, settings.redirects)
        context = VisitorContext(
            referrer=body.referrer,
            query=body.query,
            cookies=body.cookies,
            session_storage=body.session_storage,
            user_agent=body.user_agent or request.headers.get("user-agent", ""),
            page_url=body.page_url,
        )
        wizard = await FunnelWizard.mount(
            store, orchestrator, context,
            settings=settings.wizard,
            tracking=tracking,
        )
        session_id = registry.add(visitor_id, wizard)
        return _view(session_id, visitor_id, wizard)

    @app.get("/funnel/sessions/{session_id}", response_model=WizardView)
    async def get_session(session_id: str):
        visitor_id, wizard = registry.get(session_id)
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/select", response_model=WizardView)
    async def select(session_id: str, body: SelectRequest):
        """Single-select answer; may auto-advance or disqualify."""
        visitor_id, wizard = registry.get(session_id)
        await wizard.select_single(body.question, body.value)
        return _final_view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/toggle", response_model=WizardView)
    async def toggle(session_id: str, body: SelectRequest):
        visitor_id, wizard = registry.get(session_id)
        wizard.toggle(body.question, body.value)
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/text", response_model=WizardView)
    async def set_text(session_id: str, body: TextRequest):
        visitor_id, wizard = registry.get(session_id)
        wizard.set_text(body.name, body.value)
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/advance", response_model=WizardView)
    async def advance(session_id: str):
        visitor_id, wizard = registry.get(session_id)
        wizard.advance()
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/retreat", response_model=WizardView)
    async def retreat(session_id: str):
        visitor_id, wizard = registry.get(session_id)
        wizard.retreat()
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/submit", response_model=WizardView)
    async def submit(session_id: str):
        """Deliver the lead. Always ends with a redirect unless validation fails."""
        visitor_id, wizard = registry.get(session_id)
        try:
            await wizard.submit()
        except SubmissionValidationError as exc:
            logger.info("Submission rejected: %s", exc)
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _final_view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/recover", response_model=WizardView)
    async def recover(session_id: str):
        visitor_id, wizard = registry.get(session_id)
        await wizard.recover()
        return _view(session_id, visitor_id, wizard)

    @app.post("/funnel/sessions/{session_id}/start-over", response_model=WizardView)
    async def start_over(session_id: str):
        visitor_id, wizard = registry.get(session_id)
        wizard.start_over()
        return _view(session_id, visitor_id, wizard)

    return app


def main() -> None:
    import uvicorn

    settings = Settings()
    install_logging(settings.logging)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
