"""Schemas for user preferences."""
from __future__ import annotations

from pydantic import BaseModel

from stridewise.services.planning.preferences import UserPreferences


class PreferencesResponse(BaseModel):
    preferences: UserPreferences
    request_id: str
