"""Query field controller.

Translates editor lifecycle and input events into catalog refreshes,
typeahead suggestions, the active hint, and the AI repair session. The
controller holds all mutable state; the hosting widget only forwards named
events and renders :meth:`QueryFieldController.view_state`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from ..ai.client import AIClient
from ..services.label_store import LabelHistoryStore
from ..services.settings import AssistOptions, Settings
from ..utils.logging import log_context
from ..utils.telemetry import TelemetryClient
from .catalog import CatalogLoader, LoadOutcome, LoadStatus
from .completion import CompletionEngine, SuggestionsState, TypeaheadInput, TypeaheadOutput
from .contracts import Datasource, HostEditor, LanguageProvider, QueryData
from .events import (
    CatalogLoadFailed,
    CatalogLoadStarted,
    CatalogReady,
    EventBus,
    HintChanged,
    QueryChanged,
    QueryRunRequested,
    RepairStateChanged,
)
from .hints import HintAdvisory
from .models import AiRepairSession, Catalog, Hint, RepairStatus, TimeWindow
from .refresh import RefreshEvent, RefreshScheduler, RefreshTrigger
from .repair import RepairBridge

LOGGER = logging.getLogger(__name__)

QUERY_PLACEHOLDER = "Enter a PromQL query…"
REPAIR_BUTTON_LABEL = "Get AI Help"
REPAIR_LOADING_LABEL = "Loading help..."
REPAIR_PANEL_TITLE = "Does this help?"
METRICS_BROWSER_CLICKED = "user_grafana_prometheus_metrics_browser_clicked"


class CatalogLoadError(RuntimeError):
    """The language provider failed to bootstrap the catalog."""


def chooser_text(lookups_disabled: bool, has_syntax: bool, has_metrics: bool) -> str:
    if lookups_disabled:
        return "(Disabled)"
    if not has_syntax:
        return "Loading metrics..."
    if not has_metrics:
        return "(No metrics found)"
    return "Metrics browser"


@dataclass(slots=True, frozen=True)
class FieldViewState:
    """Everything the host needs to render the query field row."""

    query: str
    placeholder: str
    chooser_text: str
    chooser_disabled: bool
    label_browser_visible: bool
    hint: Hint | None
    repair_button_visible: bool
    repair_button_label: str
    repair_button_disabled: bool
    staged_rewrite: str | None
    repair_panel_title: str | None
    last_used_labels: list[str] = field(default_factory=list)


class QueryFieldController:
    """State machine behind one query editor panel."""

    def __init__(
        self,
        datasource: Datasource,
        host: HostEditor,
        *,
        options: AssistOptions | None = None,
        query: str = "",
        history: Sequence[Any] | None = None,
        ai_client: AIClient | None = None,
        event_bus: EventBus | None = None,
        telemetry: TelemetryClient | None = None,
        label_store: LabelHistoryStore | None = None,
        app: str = "",
    ) -> None:
        self._datasource = datasource
        self._host = host
        self._options = options or AssistOptions()
        self._query = query
        self._ai_client = ai_client
        self._bus = event_bus or EventBus()
        self._telemetry = telemetry or TelemetryClient()
        self._label_store = label_store
        self._app = app

        self._catalog = Catalog.empty()
        self._loader = CatalogLoader()
        self._scheduler = RefreshScheduler()
        self._completion = CompletionEngine(history=list(history or []))
        self._hints = HintAdvisory()
        self._repair = RepairBridge(
            self._get_ai_client,
            model=self._options.model,
            on_state_change=self._publish_repair_state,
        )

        self._hint: Hint | None = None
        self._data: QueryData | None = None
        self._has_error = False
        self._window: TimeWindow | None = None
        self._label_browser_visible = False
        self._refresh_task: asyncio.Task[LoadOutcome | None] | None = None
        self._typeahead_generation = 0

    @classmethod
    def from_settings(
        cls,
        datasource: Datasource,
        host: HostEditor,
        settings: Settings,
        *,
        telemetry_dir: Path | str | None = None,
        **kwargs: Any,
    ) -> "QueryFieldController":
        """Build a controller wired to persisted user settings.

        ``telemetry_opt_in`` enables interaction telemetry and
        ``last_used_labels_path`` selects the label history file.
        """

        labels_path = settings.last_used_labels_path
        return cls(
            datasource,
            host,
            options=settings.to_assist_options(),
            telemetry=TelemetryClient(enabled=settings.telemetry_opt_in, storage_dir=telemetry_dir),
            label_store=LabelHistoryStore(Path(labels_path).expanduser() if labels_path else None),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def query(self) -> str:
        return self._query

    @property
    def hint(self) -> Hint | None:
        return self._hint

    @property
    def has_error(self) -> bool:
        return self._has_error

    @property
    def repair_session(self) -> AiRepairSession:
        return self._repair.session

    @property
    def language_provider(self) -> LanguageProvider | None:
        return getattr(self._datasource, "language_provider", None)

    @property
    def pending_refresh(self) -> asyncio.Task[LoadOutcome | None] | None:
        """The most recently scheduled catalog refresh.

        Awaiting it re-raises :class:`CatalogLoadError`; a failure nobody
        awaits is logged at warning when the task finishes.
        """

        return self._refresh_task

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    def mount(self, *, data: QueryData | None = None, window: TimeWindow | None = None) -> asyncio.Task | None:
        self._data = data
        self._window = window
        self._has_error = _has_errors(data)
        self._hints.series_changed(data)
        self._refresh_hint()
        event = RefreshEvent(RefreshTrigger.MOUNT, provider_available=self.language_provider is not None)
        if self._scheduler.should_refresh(event):
            return self._schedule_refresh()
        return None

    def unmount(self) -> None:
        self._loader.cancel()

    def datasource_changed(self, datasource: Datasource) -> asyncio.Task | None:
        previous = self.language_provider
        self._datasource = datasource
        if self.language_provider is previous:
            return None
        # Loading state until the new provider finishes; never the old catalog.
        self._loader.cancel()
        self._catalog = Catalog.empty()
        if self._scheduler.should_refresh(RefreshEvent(RefreshTrigger.PROVIDER_CHANGED)):
            return self._schedule_refresh()
        return None

    def range_changed(self, window: TimeWindow) -> asyncio.Task | None:
        previous, self._window = self._window, window
        event = RefreshEvent(RefreshTrigger.RANGE_CHANGED, window=window, previous_window=previous)
        if self._scheduler.should_refresh(event):
            return self._schedule_refresh()
        return None

    def results_changed(self, data: QueryData | None) -> None:
        self._data = data
        if self._hints.series_changed(data):
            self._refresh_hint()
        self._has_error = _has_errors(data)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def refresh_catalog(self) -> LoadOutcome | None:
        """Bootstrap the current provider and swap in its catalog.

        Raises:
            CatalogLoadError: The current load failed for a reason other
                than being superseded or cancelled.
        """

        provider = self.language_provider
        if provider is None:
            self._loader.cancel()
            return None
        handle = self._loader.begin()
        with log_context(catalog=handle.generation):
            self._bus.publish(CatalogLoadStarted(generation=handle.generation))
            outcome = await self._loader.load(provider, handle=handle)

            if outcome.status is LoadStatus.SUCCESS and outcome.catalog is not None:
                self._catalog = outcome.catalog
                LOGGER.debug("Catalog ready with %d metric(s)", len(outcome.catalog.metric_names))
                self._bus.publish(
                    CatalogReady(generation=handle.generation, has_metrics=outcome.catalog.has_metrics)
                )
            elif outcome.status is LoadStatus.FAILED:
                self._bus.publish(CatalogLoadFailed(generation=handle.generation, error=str(outcome.error)))
                raise CatalogLoadError(f"Catalog load {handle.generation} failed") from outcome.error
        return outcome

    def _schedule_refresh(self) -> asyncio.Task[LoadOutcome | None]:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.refresh_catalog())
        task.add_done_callback(_log_refresh_failure)
        self._refresh_task = task
        return task

    # ------------------------------------------------------------------
    # Typeahead
    # ------------------------------------------------------------------

    async def typeahead(self, typeahead: TypeaheadInput) -> TypeaheadOutput:
        self._typeahead_generation += 1
        generation = self._typeahead_generation
        output = await self._completion.complete(self.language_provider, typeahead)
        output.generation = generation
        output.stale = generation != self._typeahead_generation
        return output

    def apply_suggestion(self, suggestion: str, state: SuggestionsState) -> str:
        return self._completion.will_apply_suggestion(suggestion, state)

    # ------------------------------------------------------------------
    # Query edits
    # ------------------------------------------------------------------

    def change_query(self, text: str, *, run_reason: str | None = None) -> None:
        """Hand ``text`` to the host; run it when ``run_reason`` is given."""

        self._query = text
        self._host.on_change(text)
        self._bus.publish(QueryChanged(text=text))
        if run_reason is not None:
            self._run_query(run_reason)
        self._repair.discard_staged()

    def toggle_label_browser(self) -> bool:
        self._telemetry.report_interaction(
            METRICS_BROWSER_CLICKED,
            editorMode="metricViewClosed" if self._label_browser_visible else "metricViewOpen",
            app=self._app,
        )
        self._label_browser_visible = not self._label_browser_visible
        return self._label_browser_visible

    def label_browser_change(self, selector: str) -> None:
        self.change_query(selector, run_reason="label_browser")
        self._label_browser_visible = False

    def apply_hint_fix(self) -> None:
        hint = self._hint
        if hint is not None and hint.fix is not None and hint.fix.action:
            self._query = self._datasource.modify_query(self._query, hint.fix.action)
            self._host.on_change(self._query)
            self._bus.publish(QueryChanged(text=self._query))
        self._run_query("hint_fix")

    def save_last_used_labels(self, labels: Sequence[str]) -> None:
        if self._label_store is not None:
            self._label_store.save(labels)

    def delete_last_used_labels(self) -> None:
        if self._label_store is not None:
            self._label_store.delete()

    # ------------------------------------------------------------------
    # AI repair
    # ------------------------------------------------------------------

    async def request_repair(self) -> AiRepairSession:
        errors = getattr(self._data, "errors", None) if self._data is not None else None
        return await self._repair.request_repair(self._query, errors, has_error=self._has_error)

    def accept_repair(self) -> str:
        rewrite = self._repair.accept()
        self.change_query(rewrite, run_reason="ai_repair")
        return rewrite

    def close_repair(self) -> None:
        self._repair.close()

    async def aclose(self) -> None:
        self.unmount()
        if self._ai_client is not None:
            await self._ai_client.aclose()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def view_state(self) -> FieldViewState:
        lookups_disabled = bool(getattr(self._datasource, "lookups_disabled", False))
        ready = self._catalog.ready
        has_metrics = self._catalog.has_metrics
        loading = self._repair.status is RepairStatus.LOADING
        staged = self._repair.staged_rewrite
        return FieldViewState(
            query=self._query,
            placeholder=QUERY_PLACEHOLDER,
            chooser_text=chooser_text(lookups_disabled, ready, has_metrics),
            chooser_disabled=not (ready and has_metrics),
            label_browser_visible=self._label_browser_visible,
            hint=self._hint,
            repair_button_visible=self._has_error,
            repair_button_label=REPAIR_LOADING_LABEL if loading else REPAIR_BUTTON_LABEL,
            repair_button_disabled=loading,
            staged_rewrite=staged,
            repair_panel_title=REPAIR_PANEL_TITLE if staged else None,
            last_used_labels=self._label_store.load() if self._label_store is not None else [],
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_hint(self) -> None:
        hint = self._hints.compute_hint(self.language_provider, self._query, self._data)
        if hint != self._hint:
            self._hint = hint
            self._bus.publish(HintChanged(hint=hint))

    def _run_query(self, reason: str) -> None:
        self._host.on_run_query()
        self._bus.publish(QueryRunRequested(reason=reason))

    def _get_ai_client(self) -> AIClient:
        if self._ai_client is None:
            self._ai_client = AIClient(self._options.to_client_settings())
        return self._ai_client

    def _publish_repair_state(self, session: AiRepairSession) -> None:
        self._bus.publish(RepairStateChanged(status=session.status, staged_rewrite=session.staged_rewrite))


def _log_refresh_failure(task: asyncio.Task[LoadOutcome | None]) -> None:
    """Retrieve the error of a scheduled refresh so it is logged once, not lost."""

    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        LOGGER.warning("Scheduled catalog refresh failed: %s", error, exc_info=error)


def _has_errors(data: QueryData | None) -> bool:
    if data is None:
        return False
    return bool(getattr(data, "errors", None))


__all__ = [
    "CatalogLoadError",
    "METRICS_BROWSER_CLICKED",
    "FieldViewState",
    "QueryFieldController",
    "chooser_text",
]
