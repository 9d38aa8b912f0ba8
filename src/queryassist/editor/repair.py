"""Bridge between failed queries and the AI completion service.

Session life cycle::

    idle -> loading -> staged -> (accepted | closed) -> idle
                  \\-> idle   (service failure, nothing staged)
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from ..ai.client import AIClient
from ..ai.prompts import build_repair_messages
from ..utils.logging import log_context
from .contracts import QueryError
from .models import AiRepairSession, RepairStatus

LOGGER = logging.getLogger(__name__)

DEFAULT_REPAIR_MODEL = "gpt-3.5-turbo"


class RepairUnavailableError(RuntimeError):
    """Raised when a repair is requested while the control would be disabled."""


class RepairStateError(RuntimeError):
    """Raised when accept/close is called with nothing staged."""


def first_error_message(errors: Sequence[QueryError] | None) -> str | None:
    for error in errors or ():
        message = getattr(error, "message", None)
        if message is not None:
            return message
    return None


class RepairBridge:
    """Owns the single live :class:`AiRepairSession`."""

    def __init__(
        self,
        client_provider: Callable[[], AIClient],
        *,
        model: str = DEFAULT_REPAIR_MODEL,
        on_state_change: Callable[[AiRepairSession], None] | None = None,
    ) -> None:
        self._client_provider = client_provider
        self._model = model
        self._on_state_change = on_state_change
        self._session = AiRepairSession()
        self._requests = 0

    @property
    def session(self) -> AiRepairSession:
        return self._session

    @property
    def status(self) -> RepairStatus:
        return self._session.status

    @property
    def staged_rewrite(self) -> str | None:
        return self._session.staged_rewrite

    def can_request(self, has_error: bool) -> bool:
        return has_error and not self._session.is_loading

    async def request_repair(self, query: str, errors: Sequence[QueryError] | None, *, has_error: bool) -> AiRepairSession:
        """Ask the AI service for a corrected query and stage its answer.

        Service failures are logged and leave the session idle; they never
        propagate to the caller.
        """

        if not self.can_request(has_error):
            raise RepairUnavailableError(
                "AI help is only available after a failed query and while no request is loading"
            )
        self._requests += 1
        with log_context(repair=self._requests):
            error = first_error_message(errors)
            LOGGER.debug("Requesting AI repair (error present=%s)", error is not None)
            self._session.mark_loading(query, error)
            self._notify()

            try:
                client = self._client_provider()
                reply = await client.complete_chat(build_repair_messages(query, error), model=self._model)
            except Exception:
                LOGGER.warning("Error sending query to AI completion service", exc_info=True)
                self._session.reset()
                self._notify()
                return self._session

            rewrite = reply.content if reply.content is not None else query
            self._session.mark_staged(rewrite)
            LOGGER.debug("AI repair staged (%d chars)", len(rewrite))
            self._notify()
        return self._session

    def accept(self) -> str:
        """Consume the staged rewrite and return it."""

        if not self._session.is_staged or self._session.staged_rewrite is None:
            raise RepairStateError("No AI rewrite is staged")
        rewrite = self._session.staged_rewrite
        self._session.reset()
        self._notify()
        return rewrite

    def close(self) -> None:
        if not self._session.is_staged:
            raise RepairStateError("No AI rewrite is staged")
        self._session.reset()
        self._notify()

    def discard_staged(self) -> bool:
        """Drop a stale staged rewrite after the query was edited."""

        if not self._session.is_staged:
            return False
        self._session.reset()
        self._notify()
        return True

    def _notify(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change(self._session)


__all__ = [
    "DEFAULT_REPAIR_MODEL",
    "RepairBridge",
    "RepairStateError",
    "RepairUnavailableError",
    "first_error_message",
]
