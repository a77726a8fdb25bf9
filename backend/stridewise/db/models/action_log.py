"""Action log ORM model recording autopilot decisions and notification outcomes."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID

from stridewise.db.base import Base
from stridewise.db.types import JSONBCompat


class ActionLog(Base):
    __tablename__ = "action_log"
    __table_args__ = (Index("ix_action_log_action_type", "action_type"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    action_type = Column(Text, nullable=False)
    action_payload = Column(JSONBCompat, nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    request_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
