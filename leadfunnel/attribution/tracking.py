"""
Tracking Identifiers
====================
Ad-platform click/browser ids, user agent and public IP.
All best-effort: a missing or failing piece is simply left blank.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..config import TrackingSettings
from .context import VisitorContext

logger = logging.getLogger(__name__)

BROWSER_ID_COOKIE = "_fbp"


@dataclass
class TrackingData:
    fbc: str = ""
    fbp: str = ""
    user_agent: str = ""
    ip: str = ""


class TrackingCollector:
    def __init__(
        self,
        settings: TrackingSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.transport = transport
        self.clock = clock

    async def collect(self, context: VisitorContext) -> TrackingData:
        data = TrackingData(user_agent=context.user_agent)

        # Click id: fb.1.<ms timestamp>.<fbclid>
        fbclid = context.query.get("fbclid")
        if fbclid:
            data.fbc = f"fb.1.{int(self.clock() * 1000)}.{fbclid}"

        data.fbp = context.cookies.get(BROWSER_ID_COOKIE, "")

        if self.settings.ip_lookup_enabled:
            data.ip = await self.lookup_ip()
        return data

    async def lookup_ip(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self.transport) as client:
                response = await client.get(self.settings.ip_lookup_url)
                response.raise_for_status()
                return str(response.json().get("ip") or "")
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, AttributeError) as exc:
            logger.warning("Failed to fetch IP address: %s", exc)
            return ""
