"""
Snapshot Store
==============
Reads and writes the funnel's persisted state on top of a KeyValueStore.

Nothing here raises. A missing key, the strings "undefined"/"null",
malformed JSON or a non-object payload all read as a cache miss, and the
bad value is removed so it cannot break the next visit either.
"""

import json
import logging
from typing import Any, Optional

from ..core.answers import AnswerSet, InitialContact
from .kv import KeyValueStore

logger = logging.getLogger(__name__)

ANSWERS_KEY = "questionnaireData"
INITIAL_CONTACT_KEY = "initialFormData"
VARIANT_KEY = "sba_landing_variant"
PATH_KEY = "sba_landing_path"

_EMPTY_MARKERS = {"", "undefined", "null"}


class SnapshotStore:
    def __init__(self, kv: KeyValueStore, max_bytes: int = 5 * 1024 * 1024):
        self.kv = kv
        self.max_bytes = max_bytes

    # ── Raw access ──────────────────────────────────────────────────────────

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self.kv.get(key)
        except Exception:
            logger.warning("Storage read failed for %s", key, exc_info=True)
            return None

    async def _set(self, key: str, value: str) -> bool:
        try:
            await self.kv.set(key, value)
            return True
        except Exception:
            logger.warning("Storage write failed for %s", key, exc_info=True)
            return False

    async def _delete(self, key: str) -> None:
        try:
            await self.kv.delete(key)
        except Exception:
            logger.error("Failed to clear %s from storage", key, exc_info=True)

    async def _read_json(self, key: str) -> Optional[dict[str, Any]]:
        raw = await self._get(key)
        if raw is None or raw.strip() in _EMPTY_MARKERS:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Corrupt JSON under %s, clearing", key)
            await self._delete(key)
            return None
        if not isinstance(data, dict):
            logger.warning("Invalid data format under %s, clearing", key)
            await self._delete(key)
            return None
        return data

    # ── Answers ─────────────────────────────────────────────────────────────

    async def load_answers(self) -> Optional[AnswerSet]:
        data = await self._read_json(ANSWERS_KEY)
        return AnswerSet.from_dict(data) if data is not None else None

    async def save_answers(self, answers: AnswerSet) -> bool:
        encoded = json.dumps(answers.to_dict(), ensure_ascii=False)
        if len(encoded.encode("utf-8")) >= self.max_bytes:
            logger.warning("Answer snapshot too large to persist (%d bytes)", len(encoded))
            return False
        return await self._set(ANSWERS_KEY, encoded)

    async def clear_answers(self) -> None:
        await self._delete(ANSWERS_KEY)

    # ── Initial contact ─────────────────────────────────────────────────────

    async def load_initial_contact(self) -> Optional[InitialContact]:
        data = await self._read_json(INITIAL_CONTACT_KEY)
        return InitialContact.from_dict(data) if data is not None else None

    async def save_initial_contact(self, contact: InitialContact) -> bool:
        return await self._set(INITIAL_CONTACT_KEY, json.dumps(contact.to_dict(), ensure_ascii=False))

    async def clear_all(self) -> None:
        """Forget answers and contact details; attribution is kept."""
        await self._delete(ANSWERS_KEY)
        await self._delete(INITIAL_CONTACT_KEY)

    # ── Landing variant ─────────────────────────────────────────────────────

    async def load_variant(self) -> tuple[Optional[str], Optional[str]]:
        return await self._get(VARIANT_KEY), await self._get(PATH_KEY)

    async def save_variant(self, variant: str, path: str) -> None:
        await self._set(VARIANT_KEY, variant)
        await self._set(PATH_KEY, path)
