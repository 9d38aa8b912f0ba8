"""Persisted "last used labels" for the label browser."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

__all__ = ["LAST_USED_LABELS_KEY", "LabelHistoryStore"]

LOGGER = logging.getLogger(__name__)
LAST_USED_LABELS_KEY = "grafana.datasources.prometheus.browser.labels"
_DEFAULT_STORE_PATH = Path.home() / ".queryassist" / "local_storage.json"


class LabelHistoryStore:
    """Key/value file store holding the label browser's recent selections.

    The file is shared with other keys; only :data:`LAST_USED_LABELS_KEY`
    is read or written here.
    """

    def __init__(self, path: Path | None = None, *, key: str = LAST_USED_LABELS_KEY) -> None:
        self._path = path or _DEFAULT_STORE_PATH
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[str]:
        value = self._read_payload().get(self._key)
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    def save(self, labels: Sequence[str]) -> None:
        payload = self._read_payload()
        payload[self._key] = [str(label) for label in labels]
        self._write_payload(payload)

    def delete(self) -> None:
        payload = self._read_payload()
        if payload.pop(self._key, None) is not None:
            self._write_payload(payload)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Local storage file %s is not valid JSON: %s", self._path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write_payload(self, payload: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)
