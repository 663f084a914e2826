"""
Delivery Sinks
==============
An HTTP endpoint that receives a copy of the lead. Delivery never raises:
every attempt comes back as a DeliveryResult for the orchestrator to
aggregate.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from ..config import SinkSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    sink: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class Sink(Protocol):
    name: str

    async def deliver(self, payload: dict[str, Any]) -> DeliveryResult: ...


class HttpSink:
    """
    POSTs the payload as JSON.

    A non-2xx status is a failure. With `require_success_flag` the JSON body
    must also carry a truthy "success" field.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        timeout: float = 20.0,
        headers: Optional[dict[str, str]] = None,
        require_success_flag: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.name = name
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}
        self.require_success_flag = require_success_flag
        self.transport = transport

    async def deliver(self, payload: dict[str, Any]) -> DeliveryResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=self.headers)
        except httpx.HTTPError as exc:
            logger.error("❌ %s delivery failed: %s", self.name, exc)
            return DeliveryResult(self.name, ok=False, error=str(exc) or type(exc).__name__)

        if not response.is_success:
            logger.error(
                "❌ %s delivery failed with status %s",
                self.name,
                response.status_code,
                extra={"response_body": response.text[:500]},
            )
            return DeliveryResult(self.name, ok=False, status_code=response.status_code,
                                  error=f"HTTP {response.status_code}")

        if self.require_success_flag:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict) or not body.get("success"):
                message = body.get("message") if isinstance(body, dict) else None
                logger.error("❌ %s rejected the lead: %s", self.name, message or "no success flag")
                return DeliveryResult(self.name, ok=False, status_code=response.status_code,
                                      error=message or "Failed to submit form")

        logger.info("✅ %s delivery successful", self.name)
        return DeliveryResult(self.name, ok=True, status_code=response.status_code)


def build_sinks(
    settings: SinkSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[HttpSink, HttpSink]:
    """(primary API sink, webhook sink)"""
    api = HttpSink(
        "api",
        settings.api_url,
        timeout=settings.timeout,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
        require_success_flag=True,
        transport=transport,
    )
    webhook = HttpSink(
        "webhook",
        settings.webhook_url,
        timeout=settings.timeout,
        headers={
            "Accept": "application/json",
            "User-Agent": settings.user_agent,
        },
        transport=transport,
    )
    return api, webhook
