"""Tests for the command-line repair entry point."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest

from queryassist import app
from queryassist.services.settings import SecretVault, Settings, SettingsStore
from tests.helpers import StubAIClient


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> list[bool]:
    for name in (
        "QUERYASSIST_API_KEY",
        "QUERYASSIST_MODEL",
        "QUERYASSIST_DEBUG",
        "QUERYASSIST_DEBUG_LOGGING",
        "QUERYASSIST_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    calls: list[bool] = []
    monkeypatch.setattr(app, "configure_logging", lambda debug=False, *, force=False: calls.append(debug))
    return calls


def _install_client(monkeypatch: pytest.MonkeyPatch, client: StubAIClient) -> list[Any]:
    built: list[Any] = []

    def _factory(settings: Any) -> StubAIClient:
        built.append(settings)
        return client

    monkeypatch.setattr(app, "AIClient", _factory)
    return built


def test_coerce_cli_overrides_parses_json_values() -> None:
    overrides = app._coerce_cli_overrides(["model=gpt-4o", "request_timeout=12.5", "telemetry_opt_in=true"])

    assert overrides == {"model": "gpt-4o", "request_timeout": 12.5, "telemetry_opt_in": True}


def test_coerce_cli_overrides_rejects_missing_separator() -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["model"])


def test_load_settings_merges_ini_section(tmp_path: Path) -> None:
    ini = tmp_path / "grafana.ini"
    ini.write_text("[openai]\napi_key = sk-from-ini\n", encoding="utf-8")
    store = SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "key"))

    settings = app.load_settings(store=store, ini_path=ini, overrides={"model": "gpt-4o"})

    assert settings.api_key == "sk-from-ini"
    assert settings.model == "gpt-4o"


@pytest.mark.asyncio
async def test_run_repair_returns_rewrite_and_closes_client() -> None:
    client = StubAIClient("sum(rate(http_requests_total[5m]))")

    rewrite = await app.run_repair(Settings(model="gpt-4o"), "sum(rate(http_requests_total))", "bad range", client=client)  # type: ignore[arg-type]

    assert rewrite == "sum(rate(http_requests_total[5m]))"
    assert client.closed is True
    assert client.calls[0]["model"] == "gpt-4o"
    assert "bad range" in client.calls[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_run_repair_returns_none_on_service_failure() -> None:
    client = StubAIClient(error=RuntimeError("boom"))

    assert await app.run_repair(Settings(), "up", None, client=client) is None  # type: ignore[arg-type]
    assert client.closed is True


def test_main_prints_rewrite(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    client = StubAIClient("up == 1")
    built = _install_client(monkeypatch, client)
    out = io.StringIO()

    code = app.main(
        ["--settings-path", str(tmp_path / "settings.json"), "--query", "up = 1", "--error", "parse error"],
        stdout=out,
    )

    assert code == 0
    assert out.getvalue() == "up == 1\n"
    assert len(built) == 1
    assert client.closed is True


def test_main_reports_failure_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _install_client(monkeypatch, StubAIClient(error=RuntimeError("offline")))

    code = app.main(["--settings-path", str(tmp_path / "settings.json"), "--query", "up"], stdout=io.StringIO())

    assert code == 1


def test_main_requires_query(tmp_path: Path) -> None:
    assert app.main(["--settings-path", str(tmp_path / "settings.json")], stdout=io.StringIO()) == 2


def test_main_rejects_bad_override(tmp_path: Path) -> None:
    code = app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "oops"], stdout=io.StringIO())

    assert code == 2


def test_dump_settings_redacts_api_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUERYASSIST_API_KEY", "sk-abcdefghijkl")
    out = io.StringIO()

    code = app.main(
        ["--settings-path", str(tmp_path / "settings.json"), "--dump-settings", "--set", "model=gpt-4o"],
        stdout=out,
    )

    payload = json.loads(out.getvalue())
    assert code == 0
    assert payload["model"] == "gpt-4o"
    assert payload["api_key"] != "sk-abcdefghijkl"


def test_debug_logging_setting_reconfigures_logging(tmp_path: Path, _isolate: list[bool]) -> None:
    app.main(
        ["--settings-path", str(tmp_path / "settings.json"), "--dump-settings", "--set", "debug_logging=true"],
        stdout=io.StringIO(),
    )

    assert _isolate == [False, True]
