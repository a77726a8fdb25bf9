from stridewise.db.base import Base
from stridewise.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())

    assert {"kv_entries", "action_log"}.issubset(table_names)


def test_action_log_is_indexed_by_type() -> None:
    table = Base.metadata.tables["action_log"]

    assert "ix_action_log_action_type" in {index.name for index in table.indexes}
