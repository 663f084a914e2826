"""
Key-Value Stores
================
The funnel persists plain strings under a handful of keys, the same way a
browser's local storage would. Two backends:

- MemoryKeyValueStore: a dict, for tests and single-process demos
- SqlKeyValueStore:    one row per (visitor, key) in PostgreSQL/SQLite
"""

from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models import StorageEntry


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, data: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueStore:
    """
    Visitor-scoped storage backed by the storage_entries table.
    Every call opens its own session and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], visitor_id: str):
        self.session_factory = session_factory
        self.visitor_id = visitor_id

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StorageEntry.value).where(
                    StorageEntry.visitor_id == self.visitor_id,
                    StorageEntry.key == key,
                )
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as session:
            entry = await session.get(StorageEntry, (self.visitor_id, key))
            if entry is None:
                session.add(StorageEntry(visitor_id=self.visitor_id, key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            await session.commit()

    async def delete(self, key: str) -> None:
        async with self.session_factory() as session:
            await session.execute(
                delete(StorageEntry).where(
                    StorageEntry.visitor_id == self.visitor_id,
                    StorageEntry.key == key,
                )
            )
            await session.commit()
