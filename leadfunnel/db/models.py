"""
Database Models
===============
StorageEntry = one persisted value for one visitor.
The server-side equivalent of the visitor's local storage.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


def utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class StorageEntry(Base):
    """
    Keyed by (visitor_id, key).
    Values are opaque strings; the snapshot layer decides what they mean.
    """
    __tablename__ = "storage_entries"

    visitor_id = Column(String(64), primary_key=True)
    key = Column(String(100), primary_key=True)

    value = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
