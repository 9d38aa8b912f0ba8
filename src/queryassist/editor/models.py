"""State models owned by the query field controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class IdentifierKind(Enum):
    """Kinds of identifiers held in the catalog."""

    METRIC_NAME = "metric_name"
    LABEL_NAME = "label_name"
    LABEL_VALUE = "label_value"


@dataclass(slots=True, frozen=True)
class Catalog:
    """Snapshot of queryable identifiers.

    Catalogs are immutable and replaced wholesale by the controller; a reader
    holding a reference never observes a partially refreshed catalog.
    """

    identifiers: Mapping[IdentifierKind, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    ready: bool = False

    @classmethod
    def empty(cls) -> "Catalog":
        return cls()

    @classmethod
    def build(
        cls,
        *,
        metrics: Iterable[str] | None,
        label_names: Iterable[str] = (),
        label_values: Iterable[str] = (),
    ) -> "Catalog":
        """Build a catalog; ``ready`` is set when a metrics collection exists."""

        identifiers = {
            IdentifierKind.METRIC_NAME: frozenset(metrics or ()),
            IdentifierKind.LABEL_NAME: frozenset(label_names),
            IdentifierKind.LABEL_VALUE: frozenset(label_values),
        }
        return cls(identifiers=MappingProxyType(identifiers), ready=metrics is not None)

    def get(self, kind: IdentifierKind) -> frozenset[str]:
        return self.identifiers.get(kind, frozenset())

    @property
    def metric_names(self) -> frozenset[str]:
        return self.get(IdentifierKind.METRIC_NAME)

    @property
    def has_metrics(self) -> bool:
        return bool(self.metric_names)


@dataclass(slots=True, frozen=True)
class TimeWindow:
    """Visible query range as epoch milliseconds."""

    from_ms: int
    to_ms: int

    @classmethod
    def from_datetimes(cls, start: datetime, end: datetime) -> "TimeWindow":
        return cls(from_ms=int(start.timestamp() * 1000), to_ms=int(end.timestamp() * 1000))


@dataclass(slots=True, frozen=True)
class HintFix:
    label: str
    action: Any = None


@dataclass(slots=True, frozen=True)
class Hint:
    """Advisory message about the current query with an optional fix."""

    label: str
    fix: HintFix | None = None
    type: str | None = None


class RepairStatus(Enum):
    """Status of an AI repair session.

    Values:
        IDLE: No request in flight and nothing staged.
        LOADING: Waiting on the AI completion service.
        STAGED: A rewrite is waiting for the user to accept or close it.
    """

    IDLE = "idle"
    LOADING = "loading"
    STAGED = "staged"


@dataclass(slots=True)
class AiRepairSession:
    """Life cycle of one "Get AI Help" request.

    Attributes:
        query: Query text that was sent for repair.
        error: First execution error message, when one existed.
        status: Current status of the session.
        staged_rewrite: Replacement query awaiting accept/close.
    """

    query: str = ""
    error: str | None = None
    status: RepairStatus = RepairStatus.IDLE
    staged_rewrite: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is RepairStatus.LOADING

    @property
    def is_staged(self) -> bool:
        return self.status is RepairStatus.STAGED

    def mark_loading(self, query: str, error: str | None) -> None:
        self.query = query
        self.error = error
        self.staged_rewrite = None
        self.status = RepairStatus.LOADING

    def mark_staged(self, rewrite: str) -> None:
        self.staged_rewrite = rewrite
        self.status = RepairStatus.STAGED

    def reset(self) -> None:
        """Return to idle, discarding any staged rewrite."""
        self.staged_rewrite = None
        self.status = RepairStatus.IDLE


__all__ = [
    "AiRepairSession",
    "Catalog",
    "Hint",
    "HintFix",
    "IdentifierKind",
    "RepairStatus",
    "TimeWindow",
]
