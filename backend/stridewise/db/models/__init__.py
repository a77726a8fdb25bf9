"""ORM models exposed for metadata discovery."""
from stridewise.db.models.action_log import ActionLog
from stridewise.db.models.kv_entry import KeyValueEntry

__all__ = [
    "ActionLog",
    "KeyValueEntry",
]
