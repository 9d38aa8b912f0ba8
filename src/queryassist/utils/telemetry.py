"""Opt-in interaction telemetry for the query editor."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

__all__ = ["InteractionEvent", "TelemetryClient"]

LOGGER = logging.getLogger(__name__)
_DEFAULT_TELEMETRY_DIR = Path.home() / ".queryassist" / "telemetry"


@dataclass(slots=True)
class InteractionEvent:
    """A single user interaction reported by the editor."""

    name: str
    properties: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def serialize(self, session_id: str) -> str:
        payload = {
            "session_id": session_id,
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "properties": self.properties,
        }
        return json.dumps(payload, default=str, ensure_ascii=False)


@dataclass(slots=True)
class TelemetryClient:
    """Buffers interaction events and appends them as JSONL when enabled."""

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 32
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _buffer: list[InteractionEvent] = field(default_factory=list, init=False, repr=False)

    def report_interaction(self, name: str, **props: Any) -> None:
        """Record an interaction if telemetry is enabled."""

        if not self.enabled:
            return
        self._buffer.append(InteractionEvent(name=name, properties=dict(props)))
        LOGGER.debug("Recorded interaction %s", name)
        if len(self._buffer) >= self.max_buffer:
            self.flush()

    def flush(self) -> Path | None:
        """Persist buffered events to disk and clear the buffer."""

        if not self.enabled or not self._buffer:
            return None

        target_dir = Path(self.storage_dir or _DEFAULT_TELEMETRY_DIR).expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        log_path = target_dir / "interactions.jsonl"
        with log_path.open("a", encoding="utf-8") as handle:
            for event in self._buffer:
                handle.write(event.serialize(self.session_id))
                handle.write("\n")
        self._buffer.clear()
        return log_path

    def pending_events(self) -> list[InteractionEvent]:
        """Return buffered events that have not been flushed yet."""

        return list(self._buffer)
