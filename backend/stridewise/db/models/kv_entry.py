"""Key-value entry ORM model backing the planner store."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Text, func

from stridewise.db.base import Base
from stridewise.db.types import JSONBCompat


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(Text, primary_key=True)
    value = Column(JSONBCompat, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
