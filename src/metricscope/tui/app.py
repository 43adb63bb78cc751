"""Textual dashboard: live counter chart with exemplars that open their traces."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, cast

from metricscope.charts.formatting import format_number, format_time
from metricscope.charts.models import ChartSeries, LocaleHints, ResolvedExemplar, SeriesKind
from metricscope.charts.pipeline import ChartUpdater, ClickHandle
from metricscope.charts.protocols import PromptResult
from metricscope.config import AppConfig
from metricscope.telemetry.models import Instrument, Trace
from metricscope.telemetry.repository import TelemetryRepository
from metricscope.telemetry.titles import resource_name, shorten_id

from .demo import DEMO_INSTRUMENT, DemoFeed

logger = logging.getLogger(__name__)

_SPARK_LEVELS = "▁▂▃▄▅▆▇█"
_SPARK_WIDTH = 48

_TEXTUAL_ERR: Exception | None = None
if TYPE_CHECKING:  # pragma: no cover - only for static analysis
    from rich.text import Text
    from textual.app import App as AppBase
    from textual.app import ComposeResult
    from textual.binding import Binding
    from textual.containers import Vertical
    from textual.screen import ModalScreen, Screen
    from textual.widgets import Button, DataTable, Footer, Header, Label, Static
else:  # pragma: no cover - guarded runtime import
    try:
        from rich.text import Text
        from textual.app import App as AppBase
        from textual.app import ComposeResult
        from textual.binding import Binding
        from textual.containers import Vertical
        from textual.screen import ModalScreen, Screen
        from textual.widgets import Button, DataTable, Footer, Header, Label, Static
    except Exception as exc:  # pragma: no cover  # noqa: BLE001
        _TEXTUAL_ERR = exc
        Text = cast(Any, str)
        AppBase = cast(Any, object)
        ComposeResult = cast(Any, object)
        Binding = cast(Any, object)
        Vertical = cast(Any, object)
        ModalScreen = cast(Any, object)
        Screen = cast(Any, object)
        Button = cast(Any, object)
        DataTable = cast(Any, object)
        Footer = cast(Any, object)
        Header = cast(Any, object)
        Label = cast(Any, object)
        Static = cast(Any, object)


def _sparkline(values: Sequence[float | None], width: int = _SPARK_WIDTH) -> str:
    """Render the last ``width`` values as block characters; gaps become spaces."""

    window = list(values)[-width:]
    present = [value for value in window if value is not None]
    if not present:
        return " " * len(window)
    low, high = min(present), max(present)
    span = high - low
    chars = []
    for value in window:
        if value is None:
            chars.append(" ")
            continue
        level = 0 if span == 0 else round((value - low) / span * (len(_SPARK_LEVELS) - 1))
        chars.append(_SPARK_LEVELS[level])
    return "".join(chars)


def _format_series(series: Sequence[ChartSeries], instrument: Instrument | None = None) -> str:
    if not series:
        return "No series in window."
    width = max(len(item.name) for item in series)
    lines = []
    for item in series:
        latest = next((value for value in reversed(item.diff_values) if value is not None), None)
        label = f"last {format_number(latest)}" if latest is not None else "last n/a"
        lines.append(f"{item.name:<{width}}  {_sparkline(item.diff_values)}  {label}")
    if instrument is not None and instrument.description:
        lines.append(instrument.description)
    return "\n".join(lines)


def _format_window(window_start: datetime, in_progress: datetime, hints: LocaleHints) -> str:
    return f"Window {format_time(window_start, hints)} → {format_time(in_progress, hints)}"


def _format_span_rows(trace: Trace, applications: Sequence[Any]) -> list[tuple[str, str, str, str]]:
    rows = []
    for span in trace.spans:
        depth = 0
        parent = span.parent_span_id
        while parent is not None and depth < 32:
            parent_span = trace.find_span(parent)
            if parent_span is None:
                break
            depth += 1
            parent = parent_span.parent_span_id
        rows.append(
            (
                "  " * depth + span.name,
                resource_name(span.source, applications),
                f"{format_number(span.duration_ms, 2)} ms",
                span.span_id,
            )
        )
    return rows


if _TEXTUAL_ERR is None:

    class WaitPromptScreen(ModalScreen[PromptResult]):
        """Modal shown while an exemplar's span is still being ingested."""

        DEFAULT_CSS = """
        WaitPromptScreen { align: center middle; }
        #prompt { width: 60; height: auto; padding: 1 2; background: #1f2937; border: round #60a5fa; }
        #prompt Button { margin-top: 1; }
        """

        BINDINGS = [Binding("escape", "cancel", "Cancel")]

        def __init__(self, message: str) -> None:
            super().__init__()
            self.message = message
            self.pending_outcome: PromptResult | None = None

        def compose(self) -> ComposeResult:
            with Vertical(id="prompt"):
                yield Label(self.message)
                yield Button("Cancel", id="cancel", variant="error")

        def on_button_pressed(self, event: Button.Pressed) -> None:
            if event.button.id == "cancel":
                self.dismiss(PromptResult.CANCELLED)

        def action_cancel(self) -> None:
            self.dismiss(PromptResult.CANCELLED)

        def dismiss_when_active(self, outcome: PromptResult) -> None:
            """Dismiss now if on top, otherwise as soon as the screen is resumed."""

            if self.app.screen is self:
                self.dismiss(outcome)
            else:
                self.pending_outcome = outcome

        def on_screen_resume(self) -> None:
            if self.pending_outcome is not None:
                outcome, self.pending_outcome = self.pending_outcome, None
                self.dismiss(outcome)

    class TraceDetailScreen(Screen[None]):
        """Span listing for one trace, with the selected exemplar's span highlighted."""

        BINDINGS = [Binding("escape", "close", "Back")]

        def __init__(self, trace: Trace, span_id: str, rows: list[tuple[str, str, str, str]]) -> None:
            super().__init__()
            self.trace = trace
            self.span_id = span_id
            self._rows = rows

        def compose(self) -> ComposeResult:
            yield Header()
            yield Static(f"Trace {shorten_id(self.trace.trace_id)} · {len(self.trace.spans)} span(s)")
            yield DataTable(id="spans", cursor_type="row")
            yield Footer()

        def on_mount(self) -> None:
            table = self.query_one("#spans", DataTable)
            table.add_columns("Span", "Source", "Duration", "Span id")
            selected = 0
            for index, row in enumerate(self._rows):
                table.add_row(*(Text(cell) for cell in row), key=row[3])
                if row[3] == self.span_id:
                    selected = index
            table.move_cursor(row=selected)

        def action_close(self) -> None:
            self.app.pop_screen()

    @dataclass
    class TextualPromptHandle:
        screen: WaitPromptScreen
        result: asyncio.Future[PromptResult]

    class TextualPromptService:
        def __init__(self, app: AppBase[Any]) -> None:
            self._app = app

        def show(self, message: str) -> TextualPromptHandle:
            future: asyncio.Future[PromptResult] = asyncio.get_running_loop().create_future()
            screen = WaitPromptScreen(message)

            def _on_dismiss(result: PromptResult | None) -> None:
                if not future.done():
                    future.set_result(result or PromptResult.CANCELLED)

            self._app.push_screen(screen, callback=_on_dismiss)
            return TextualPromptHandle(screen=screen, result=future)

        def dismiss(self, handle: TextualPromptHandle, outcome: PromptResult) -> None:
            if handle.result.done():
                return
            handle.result.set_result(outcome)
            handle.screen.dismiss_when_active(outcome)

    class TextualNavigator:
        def __init__(self, app: AppBase[Any], repository: TelemetryRepository) -> None:
            self._app = app
            self._repository = repository

        def go_to(self, trace_id: str, span_id: str) -> None:
            trace = self._repository.get_trace(trace_id)
            if trace is None:
                logger.warning("Trace %s vanished before navigation", trace_id)
                return
            rows = _format_span_rows(trace, self._repository.applications())
            self._app.push_screen(TraceDetailScreen(trace, span_id, rows))

    class TextualRenderSink:
        """Adapts chart frames to the dashboard widgets."""

        def __init__(self, app: ExemplarChartApp) -> None:
            self._app = app

        def initialize(
            self,
            series: Sequence[ChartSeries],
            exemplars: Sequence[ResolvedExemplar],
            in_progress: datetime,
            window_start: datetime,
            locale_hints: LocaleHints,
            click_handle: ClickHandle,
        ) -> None:
            self._app.bind_chart(locale_hints, click_handle)
            self._app.render_chart(series, exemplars, in_progress, window_start)

        def update(
            self,
            series: Sequence[ChartSeries],
            exemplars: Sequence[ResolvedExemplar],
            in_progress: datetime,
            window_start: datetime,
        ) -> None:
            self._app.render_chart(series, exemplars, in_progress, window_start)

    class ExemplarChartApp(AppBase[None]):
        """Terminal chart of a counter with exemplars that open their traces."""

        CSS = """
        Screen { layout: vertical; }
        #status { padding: 1 2; background: #1f2937; color: #e5e7eb; }
        #series { padding: 1 2; }
        #exemplars { height: 1fr; }
        """

        BINDINGS = [
            Binding("r", "redraw", "Redraw"),
            Binding("q", "quit", "Quit"),
        ]

        def __init__(
            self,
            feed: DemoFeed,
            config: AppConfig | None = None,
            instrument: Instrument | None = DEMO_INSTRUMENT,
            kind: SeriesKind = SeriesKind.COUNTER,
        ) -> None:
            super().__init__()
            self.feed = feed
            self.config = config or AppConfig()
            self.instrument = instrument
            self.kind = kind
            self._click_handle: ClickHandle | None = None
            self._hints: LocaleHints | None = None
            self._rows: dict[str, tuple[str, str]] = {}
            self._updater: ChartUpdater | None = None

        def compose(self) -> ComposeResult:
            yield Header(show_clock=True)
            yield Static("Waiting for samples…", id="status")
            yield Static("", id="series")
            yield DataTable(id="exemplars", cursor_type="row")
            yield Footer()

        def on_mount(self) -> None:
            self._status = self.query_one("#status", Static)
            self._series_view = self.query_one("#series", Static)
            self._table = self.query_one("#exemplars", DataTable)
            self._table.add_columns("Time", "Value", "Exemplar")
            repository = self.feed.repository
            self._updater = ChartUpdater.from_config(
                self.config,
                TextualRenderSink(self),
                repository,
                TextualPromptService(self),
                TextualNavigator(self, repository),
                instrument=self.instrument,
                applications=repository.applications,
            )
            self.refresh_chart(tick_update=False)
            self.set_interval(self.feed.bucket_seconds, self.refresh_chart)

        def on_unmount(self) -> None:
            if self._updater is not None:
                self._updater.dispose()

        def refresh_chart(self, tick_update: bool = True) -> None:
            if self._updater is None or self._updater.disposed:
                return
            self.feed.advance()
            self._updater.update(
                self.feed.series(),
                self.kind,
                self.feed.exemplars(),
                tick_update=tick_update,
                in_progress=self.feed.in_progress,
            )

        def action_redraw(self) -> None:
            self.refresh_chart(tick_update=False)

        def bind_chart(self, locale_hints: LocaleHints, click_handle: ClickHandle) -> None:
            self._click_handle = click_handle
            self._hints = locale_hints

        def render_chart(
            self,
            series: Sequence[ChartSeries],
            exemplars: Sequence[ResolvedExemplar],
            in_progress: datetime,
            window_start: datetime,
        ) -> None:
            hints = self._hints or LocaleHints(periods=("AM", "PM"), time_format="%H:%M:%S")
            resolved = sum(1 for exemplar in exemplars if exemplar.span is not None)
            self._status.update(
                f"{_format_window(window_start, in_progress, hints)} • "
                f"{len(exemplars)} exemplar(s), {resolved} resolved"
            )
            self._series_view.update(_format_series(series, self.instrument))

            cursor = self._table.cursor_row
            self._table.clear()
            self._rows.clear()
            for index, exemplar in enumerate(exemplars):
                key = str(index)
                self._rows[key] = (exemplar.trace_id, exemplar.span_id)
                self._table.add_row(
                    format_time(exemplar.timestamp.astimezone(in_progress.tzinfo), hints),
                    format_number(exemplar.value),
                    Text(exemplar.title),
                    key=key,
                )
            if exemplars:
                self._table.move_cursor(row=min(cursor, len(exemplars) - 1))

        def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
            if event.data_table is not self._table or self._click_handle is None:
                return
            ids = self._rows.get(str(event.row_key.value))
            if ids is not None:
                self._click_handle(*ids)

else:  # pragma: no cover - exercised only when Textual is absent

    class ExemplarChartApp:  # type: ignore[no-redef]
        def __init__(self, *_args: Any, **_kwargs: Any) -> None:
            raise ImportError(
                "The terminal dashboard requires the 'textual' package. Install with `pip install textual`."
            ) from _TEXTUAL_ERR


def run_dashboard(
    config: AppConfig | None = None,
    *,
    seed: int = 7,
    ingest_delay: int = 3,
    window_buckets: int = 60,
    bucket_seconds: float = 1.0,
) -> None:
    """Launch the dashboard against a synthetic feed."""

    feed = DemoFeed(
        TelemetryRepository(),
        seed=seed,
        ingest_delay=ingest_delay,
        window_buckets=window_buckets,
        bucket_seconds=bucket_seconds,
    )
    app = ExemplarChartApp(feed, config=config)
    app.run()


__all__ = ["ExemplarChartApp", "run_dashboard"]
