"""Schemas for job operations endpoints."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["autopilot", "streak", "patterns", "plan_sync"]
    today: Optional[date] = None
    force: bool = False


class JobRunResponse(BaseModel):
    job: str
    target_date: date
    items_written: int
    skipped: Optional[str]
    errors: List[str]
    details: Dict[str, Any]
    request_id: str
