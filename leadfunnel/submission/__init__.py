"""Delivering finished (or disqualified) leads to external sinks."""

from .orchestrator import SubmissionOrchestrator, SubmissionOutcome
from .redirects import RedirectTarget
from .sinks import DeliveryResult, HttpSink, build_sinks

__all__ = [
    "DeliveryResult",
    "HttpSink",
    "RedirectTarget",
    "SubmissionOrchestrator",
    "SubmissionOutcome",
    "build_sinks",
]
