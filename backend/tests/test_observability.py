"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib

from stridewise.observability import client as client_module
from stridewise.observability.tracing import trace


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import stridewise.core.config as core_config
    import stridewise.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")


def test_trace_yields_none_without_client(monkeypatch) -> None:
    monkeypatch.setattr("stridewise.observability.tracing.get_opik_client", lambda: None)

    with trace("planner.generate", metadata={"date": "2024-03-04"}) as opik_trace:
        assert opik_trace is None


def test_missing_api_key_disables_client(monkeypatch) -> None:
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik_client()
    try:
        assert client_module.init_opik() is None
    finally:
        client_module.reset_opik_client()
