"""
Landing Variant Resolution
==========================
Which landing page sent this visitor to the questionnaire?

Sources are tried in order, first match wins:

    1. value persisted on an earlier visit
    2. referrer URL path
    3. ?variant= / ?v= query parameter
    4. ab_variant cookie
    5. session storage mirror
    6. unknown

Anything found in 2-5 is persisted, so attribution stays stable even after
the referrer or cookie is gone.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlsplit

from ..storage.snapshot import PATH_KEY, VARIANT_KEY, SnapshotStore
from .context import VisitorContext

logger = logging.getLogger(__name__)

VARIANT_COOKIE = "ab_variant"


class VariantTag(str, Enum):
    VARIANT_A = "variant_a"
    VARIANT_1 = "variant_1"
    ROOT_REDIRECT = "root_redirect"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LandingVariant:
    variant: VariantTag = VariantTag.UNKNOWN
    path: str = "/"

    @property
    def ab_test_variant(self) -> str:
        return _AB_TEST_CODES.get(self.path, "unknown")

    @property
    def is_variant_a(self) -> bool:
        return self.path == "/a"

    @property
    def is_variant_1(self) -> bool:
        return self.path == "/1"

    @property
    def is_root_redirect(self) -> bool:
        return self.path == "/"


UNKNOWN_VARIANT = LandingVariant()

_AB_TEST_CODES = {"/a": "a", "/1": "1", "/": "root"}

# Referrer path -> variant
REFERRER_PATHS = {
    "/a": LandingVariant(VariantTag.VARIANT_A, "/a"),
    "/1": LandingVariant(VariantTag.VARIANT_1, "/1"),
    "/": LandingVariant(VariantTag.ROOT_REDIRECT, "/"),
    "/watch": LandingVariant(VariantTag.ROOT_REDIRECT, "/"),
}

# Short code used by the query parameter and the cookie -> variant
SHORT_CODES = {
    "a": LandingVariant(VariantTag.VARIANT_A, "/a"),
    "1": LandingVariant(VariantTag.VARIANT_1, "/1"),
    "root": LandingVariant(VariantTag.ROOT_REDIRECT, "/"),
}


def _pair(variant: Optional[str], path: Optional[str]) -> Optional[LandingVariant]:
    if not variant or not path:
        return None
    try:
        return LandingVariant(VariantTag(variant), path)
    except ValueError:
        return None


def from_referrer(context: VisitorContext) -> Optional[LandingVariant]:
    if not context.referrer:
        return None
    path = urlsplit(context.referrer).path or "/"
    return REFERRER_PATHS.get(path)


def from_query(context: VisitorContext) -> Optional[LandingVariant]:
    code = context.query.get("variant") or context.query.get("v")
    return SHORT_CODES.get(code) if code else None


def from_cookie(context: VisitorContext) -> Optional[LandingVariant]:
    code = context.cookies.get(VARIANT_COOKIE)
    return SHORT_CODES.get(code) if code else None


def from_session_storage(context: VisitorContext) -> Optional[LandingVariant]:
    return _pair(context.session_storage.get(VARIANT_KEY), context.session_storage.get(PATH_KEY))


SOURCES: tuple[tuple[str, Callable[[VisitorContext], Optional[LandingVariant]]], ...] = (
    ("referrer", from_referrer),
    ("query", from_query),
    ("cookie", from_cookie),
    ("session_storage", from_session_storage),
)


class VariantResolver:
    def __init__(self, store: SnapshotStore):
        self.store = store

    async def resolve(self, context: VisitorContext) -> LandingVariant:
        """Never raises; falls back to unknown."""
        stored = _pair(*await self.store.load_variant())
        if stored is not None:
            logger.debug("Landing variant from storage: %s %s", stored.variant.value, stored.path)
            return stored

        for name, lookup in SOURCES:
            try:
                found = lookup(context)
            except Exception:
                logger.warning("Could not read landing variant from %s", name, exc_info=True)
                continue
            if found is not None:
                await self.store.save_variant(found.variant.value, found.path)
                logger.info(
                    "Detected landing variant from %s",
                    name,
                    extra={"variant": found.variant.value, "path": found.path},
                )
                return found

        logger.info("No landing variant detected, using default")
        return UNKNOWN_VARIANT
