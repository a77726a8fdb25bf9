"""Provider factories selected by settings."""
from __future__ import annotations

import logging
from functools import lru_cache

from stridewise.core.config import settings
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider
from stridewise.services.providers.noop import NoopActivityDataProvider, NoopCalendarProvider

logger = logging.getLogger(__name__)


@lru_cache
def get_calendar_provider() -> CalendarProvider:
    provider = settings.calendar_provider.lower()
    if provider != "noop":
        logger.warning("Unknown calendar provider %r; using noop", provider)
    return NoopCalendarProvider()


@lru_cache
def get_activity_provider() -> ActivityDataProvider:
    provider = settings.activity_provider.lower()
    if provider != "noop":
        logger.warning("Unknown activity provider %r; using noop", provider)
    return NoopActivityDataProvider()
