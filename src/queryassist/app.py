"""Command-line entry point for requesting an AI repair outside the editor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO

from .ai.client import AIClient
from .editor.models import RepairStatus
from .editor.repair import RepairBridge
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class _CliError:
    message: str | None


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    ini_path: Optional[Path] = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings, then the server INI section, then overrides."""

    active_store = store or SettingsStore(path)
    settings = active_store.load(overrides=overrides)
    if ini_path is not None:
        settings = active_store.load_ini_section(ini_path, settings)
    return settings


async def run_repair(
    settings: Settings,
    query: str,
    error: str | None,
    *,
    client: AIClient | None = None,
) -> str | None:
    """Send one repair request and return the staged rewrite, if any."""

    ai_client = client or AIClient(settings.to_assist_options().to_client_settings())
    bridge = RepairBridge(lambda: ai_client, model=settings.model)
    try:
        session = await bridge.request_repair(query, [_CliError(error)], has_error=True)
    finally:
        await ai_client.aclose()
    if session.status is not RepairStatus.STAGED:
        return None
    return session.staged_rewrite


def main(argv: Sequence[str] | None = None, *, stdout: TextIO | None = None) -> int:
    """Entry point invoked by the ``queryassist-repair`` console script."""

    out = stdout or sys.stdout
    args = _parse_cli_args(argv)
    debug = _env_flag("QUERYASSIST_DEBUG")
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("QUERYASSIST_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    try:
        overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(
        resolved_path,
        ini_path=Path(args.ini).expanduser() if args.ini else None,
        overrides=overrides or None,
    )
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.dump_settings:
        payload = asdict(settings)
        payload["api_key"] = redact_secret(settings.api_key)
        out.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        return 0

    if not args.query:
        print("--query is required unless --dump-settings is given", file=sys.stderr)
        return 2

    rewrite = asyncio.run(run_repair(settings, args.query, args.error))
    if rewrite is None:
        print("AI repair failed; see the log for details", file=sys.stderr)
        return 1
    out.write(rewrite + "\n")
    return 0


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="queryassist-repair", description=__doc__)
    parser.add_argument("--query", help="PromQL query that failed")
    parser.add_argument("--error", help="Error message returned by the failed query")
    parser.add_argument("--settings-path", help="Path to settings.json")
    parser.add_argument("--ini", help="Server INI file with an [openai] section")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        metavar="KEY=VALUE",
        help="Override a setting for this run (repeatable)",
    )
    parser.add_argument("--dump-settings", action="store_true", help="Print effective settings and exit")
    return parser.parse_args(list(argv) if argv is not None else None)


def _coerce_cli_overrides(pairs: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        try:
            overrides[key] = json.loads(raw)
        except json.JSONDecodeError:
            overrides[key] = raw
    return overrides


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
