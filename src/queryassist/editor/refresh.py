"""Policy deciding when the catalog should be re-bootstrapped."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import TimeWindow

_MS_PER_MINUTE = 60_000


class RefreshTrigger(Enum):
    MOUNT = "mount"
    PROVIDER_CHANGED = "provider_changed"
    RANGE_CHANGED = "range_changed"
    RESULTS_CHANGED = "results_changed"


@dataclass(slots=True, frozen=True)
class RefreshEvent:
    trigger: RefreshTrigger
    window: TimeWindow | None = None
    previous_window: TimeWindow | None = None
    provider_available: bool = True


def round_ms_to_min(milliseconds: float) -> int:
    """Return the whole minute containing ``milliseconds``."""

    return int(milliseconds // _MS_PER_MINUTE)


def same_minute_window(window: TimeWindow, other: TimeWindow) -> bool:
    return round_ms_to_min(window.from_ms) == round_ms_to_min(other.from_ms) and round_ms_to_min(
        window.to_ms
    ) == round_ms_to_min(other.to_ms)


class RefreshScheduler:
    """Stateless refresh policy.

    Relative ranges on auto-refreshing dashboards shift every run; comparing
    at minute granularity keeps those runs from refetching the catalog.
    """

    def should_refresh(self, event: RefreshEvent) -> bool:
        if event.trigger is RefreshTrigger.PROVIDER_CHANGED:
            return True
        if event.trigger is RefreshTrigger.MOUNT:
            return event.provider_available
        if event.trigger is RefreshTrigger.RANGE_CHANGED:
            return self.range_changed_to_refresh(event.window, event.previous_window)
        return False

    @staticmethod
    def range_changed_to_refresh(window: TimeWindow | None, previous: TimeWindow | None) -> bool:
        if window is None or previous is None:
            return False
        return not same_minute_window(window, previous)


__all__ = [
    "RefreshEvent",
    "RefreshScheduler",
    "RefreshTrigger",
    "round_ms_to_min",
    "same_minute_window",
]
