"""Cancelable bootstrap of the identifier catalog."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from .contracts import LanguageProvider
from .models import Catalog

LOGGER = logging.getLogger(__name__)


class LoadStatus(Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class LoadHandle:
    """Token identifying one bootstrap attempt."""

    generation: int


@dataclass(slots=True, frozen=True)
class LoadOutcome:
    """Tagged result of :meth:`CatalogLoader.load`."""

    status: LoadStatus
    handle: LoadHandle
    catalog: Catalog | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is LoadStatus.SUCCESS


class CatalogLoader:
    """Runs language-provider bootstraps, at most one of them current.

    Starting a load supersedes the previous one. Superseded or cancelled
    loads still run to completion on the network side; their outcome is
    reported as ``CANCELLED`` and carries no catalog.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._current: int | None = None

    @property
    def current(self) -> LoadHandle | None:
        if self._current is None:
            return None
        return LoadHandle(self._current)

    def begin(self) -> LoadHandle:
        self._generation += 1
        self._current = self._generation
        return LoadHandle(self._generation)

    def cancel(self, handle: LoadHandle | None = None) -> None:
        """Cancel ``handle`` (or whichever load is current)."""

        if self._current is None:
            return
        if handle is not None and handle.generation != self._current:
            return
        LOGGER.debug("Cancelling catalog load generation %s", self._current)
        self._current = None

    def is_current(self, handle: LoadHandle) -> bool:
        return self._current == handle.generation

    async def load(self, provider: LanguageProvider, *, handle: LoadHandle | None = None) -> LoadOutcome:
        """Bootstrap ``provider`` and read its identifier sets."""

        handle = handle or self.begin()
        try:
            pending = await provider.start()
            if pending:
                await asyncio.gather(*pending)
            catalog = read_catalog(provider)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self.is_current(handle):
                LOGGER.debug("Discarding failure from superseded load %s: %s", handle.generation, exc)
                return LoadOutcome(LoadStatus.CANCELLED, handle)
            LOGGER.debug("Catalog load %s failed: %s", handle.generation, exc)
            return LoadOutcome(LoadStatus.FAILED, handle, error=exc)

        if not self.is_current(handle):
            LOGGER.debug("Discarding result from superseded load %s", handle.generation)
            return LoadOutcome(LoadStatus.CANCELLED, handle)
        return LoadOutcome(LoadStatus.SUCCESS, handle, catalog=catalog)


def read_catalog(provider: LanguageProvider) -> Catalog:
    """Snapshot the identifier sets currently exposed by ``provider``."""

    metrics = getattr(provider, "metrics", None)
    label_names: Iterable[str] = getattr(provider, "label_keys", None) or ()
    values_by_key: Mapping[str, Iterable[Any]] = getattr(provider, "label_values", None) or {}
    label_values = {str(value) for values in values_by_key.values() for value in values}
    return Catalog.build(
        metrics=list(metrics) if metrics is not None else None,
        label_names=list(label_names),
        label_values=label_values,
    )


__all__ = ["CatalogLoader", "LoadHandle", "LoadOutcome", "LoadStatus", "read_catalog"]
