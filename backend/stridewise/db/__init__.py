"""Database utilities and models."""

from stridewise.db.base import Base
from stridewise.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
