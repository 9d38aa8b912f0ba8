"""Event bus carrying notifications from the query field controller.

Hosts subscribe to the events they render (loading state, hints, the AI
help panel) instead of polling the controller.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, TypeVar
from weakref import WeakMethod

from .models import Hint, RepairStatus

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for controller events."""


# =============================================================================
# Catalog Events
# =============================================================================


@dataclass(slots=True)
class CatalogLoadStarted(Event):
    """Emitted when a catalog bootstrap begins.

    Attributes:
        generation: Token of the load; later loads have larger values.
    """

    generation: int


@dataclass(slots=True)
class CatalogReady(Event):
    """Emitted when the current load finished and the catalog was swapped in."""

    generation: int
    has_metrics: bool


@dataclass(slots=True)
class CatalogLoadFailed(Event):
    generation: int
    error: str


# =============================================================================
# Query Events
# =============================================================================


@dataclass(slots=True)
class HintChanged(Event):
    hint: Hint | None


@dataclass(slots=True)
class QueryChanged(Event):
    """Emitted whenever the controller hands new query text to the host."""

    text: str


@dataclass(slots=True)
class QueryRunRequested(Event):
    """Emitted when the controller asks the host to execute the query.

    Attributes:
        reason: One of ``"label_browser"``, ``"hint_fix"`` or ``"ai_repair"``.
    """

    reason: str


@dataclass(slots=True)
class RepairStateChanged(Event):
    status: RepairStatus
    staged_rewrite: str | None = None


class EventBus:
    """Typed publish/subscribe dispatcher.

    Handlers run synchronously in registration order. Bound methods are held
    weakly so subscribers can be garbage collected without unsubscribing.
    Not thread-safe; use from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: Event) -> None:
        """Deliver ``event``; a failing handler does not stop the others."""

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        if dead:
            handlers[:] = [handler_ref for handler_ref in handlers if handler_ref not in dead]

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference otherwise."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "CatalogLoadFailed",
    "CatalogLoadStarted",
    "CatalogReady",
    "Event",
    "EventBus",
    "Handler",
    "HintChanged",
    "QueryChanged",
    "QueryRunRequested",
    "RepairStateChanged",
]
