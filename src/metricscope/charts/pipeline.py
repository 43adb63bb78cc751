"""Per-tick glue: build series, resolve exemplars and push the result to a sink."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING

from metricscope.contracts.error import LifecycleError
from metricscope.telemetry.models import Application, Instrument

from .exemplars import SpanCache, correlate_exemplars
from .formatting import TooltipFormatter, locale_hints, to_local
from .models import ExemplarPoint, LocaleHints, RenderPayload, SeriesInput, SeriesKind
from .protocols import Navigator, PromptService, RenderSink, SpanLookup
from .series import build_chart
from .span_wait import SpanWaitCoordinator, WaitState

if TYPE_CHECKING:  # pragma: no cover - typing only
    from metricscope.config import AppConfig

logger = logging.getLogger(__name__)

ClickCallback = Callable[[str, str], "asyncio.Task[WaitState | None] | None"]


class ClickHandle:
    """Callable given to a sink on full redraw; it goes inert once revoked."""

    __slots__ = ("_callback", "_revoked")

    def __init__(self, callback: ClickCallback) -> None:
        self._callback = callback
        self._revoked = False

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        self._revoked = True

    def __call__(self, trace_id: str, span_id: str) -> asyncio.Task[WaitState | None] | None:
        if self._revoked:
            logger.debug("Ignoring click on revoked handle for trace %s", trace_id)
            return None
        return self._callback(trace_id, span_id)


class ChartUpdater:
    """Owns the span cache and the wait coordinator of one chart."""

    def __init__(
        self,
        sink: RenderSink,
        lookup: SpanLookup,
        coordinator: SpanWaitCoordinator,
        *,
        duration: timedelta,
        instrument: Instrument | None = None,
        applications: Callable[[], Iterable[Application]] | None = None,
        tz: tzinfo | None = None,
        clock: str = "auto",
        max_decimal_places: int = 3,
    ) -> None:
        self._sink = sink
        self._lookup = lookup
        self._coordinator = coordinator
        self._duration = duration
        self._instrument = instrument
        self._applications = applications or tuple
        self._tz = tz
        self._clock = clock
        self._max_decimal_places = max_decimal_places
        self._hints: LocaleHints = locale_hints(clock)
        self._current = SpanCache.empty()
        self._click_handle: ClickHandle | None = None
        self._tasks: set[asyncio.Task[WaitState | None]] = set()
        self._disposed = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        sink: RenderSink,
        lookup: SpanLookup,
        prompt: PromptService,
        navigator: Navigator,
        *,
        instrument: Instrument | None = None,
        applications: Callable[[], Iterable[Application]] | None = None,
    ) -> ChartUpdater:
        coordinator = SpanWaitCoordinator(
            lookup, prompt, navigator, poll_interval=config.exemplars.poll_interval
        )
        return cls(
            sink,
            lookup,
            coordinator,
            duration=timedelta(seconds=config.chart.duration_seconds),
            instrument=instrument,
            applications=applications,
            tz=config.chart.tzinfo(),
            clock=config.chart.clock,
            max_decimal_places=config.chart.max_decimal_places,
        )

    @property
    def span_cache(self) -> SpanCache:
        return self._current

    @property
    def coordinator(self) -> SpanWaitCoordinator:
        return self._coordinator

    @property
    def click_handle(self) -> ClickHandle | None:
        return self._click_handle

    @property
    def pending(self) -> frozenset[asyncio.Task[WaitState | None]]:
        return frozenset(self._tasks)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def update(
        self,
        inputs: Sequence[SeriesInput],
        kind: SeriesKind,
        exemplar_points: Iterable[ExemplarPoint],
        *,
        tick_update: bool,
        in_progress: datetime,
    ) -> RenderPayload:
        """Run one refresh tick and deliver it to the sink.

        A tick update before the first full redraw is promoted to a full redraw.
        Callers must not overlap calls.
        """

        if self._disposed:
            raise LifecycleError("Chart updater has been disposed")
        full_redraw = not tick_update or self._click_handle is None
        if full_redraw:
            self._hints = locale_hints(self._clock)

        formatter = TooltipFormatter(
            instrument=self._instrument,
            tz=self._tz,
            hints=self._hints,
            max_decimal_places=self._max_decimal_places,
        )
        x_values, series = build_chart(inputs, kind, formatter=formatter)
        exemplars, next_cache = correlate_exemplars(
            exemplar_points,
            self._current,
            self._lookup,
            applications=tuple(self._applications()),
            formatter=formatter,
        )
        self._current = next_cache

        in_progress_local = to_local(in_progress, self._tz)
        window_start = to_local(in_progress - self._duration, self._tz)
        payload = RenderPayload(
            x_values=x_values,
            series=series,
            exemplars=tuple(exemplars),
            in_progress=in_progress_local,
            window_start=window_start,
            locale_hints=self._hints if full_redraw else None,
            tick_update=not full_redraw,
        )

        if full_redraw:
            if self._click_handle is not None:
                self._click_handle.revoke()
            self._click_handle = ClickHandle(self.handle_click)
            self._sink.initialize(
                payload.series,
                payload.exemplars,
                in_progress_local,
                window_start,
                self._hints,
                self._click_handle,
            )
        else:
            self._sink.update(payload.series, payload.exemplars, in_progress_local, window_start)
        return payload

    def handle_click(self, trace_id: str, span_id: str) -> asyncio.Task[WaitState | None] | None:
        """Start navigating to a clicked exemplar; clicks made outside an event loop are dropped."""

        if self._disposed:
            logger.debug("Ignoring exemplar click after dispose (trace %s)", trace_id)
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Ignoring exemplar click outside a running event loop (trace %s)", trace_id)
            return None
        task = loop.create_task(self._view_span(trace_id, span_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _view_span(self, trace_id: str, span_id: str) -> WaitState | None:
        try:
            return await self._coordinator.view_span(trace_id, span_id)
        except LifecycleError:
            logger.debug("Chart disposed before trace %s could be opened", trace_id)
            return None
        except Exception:  # noqa: BLE001 - keep failures away from the sink
            logger.exception("Failed to open span %s of trace %s", span_id, trace_id)
            return None

    def dispose(self) -> None:
        """Stop outstanding waits and revoke the click handle. Safe to call twice."""

        if self._disposed:
            return
        self._disposed = True
        if self._click_handle is not None:
            self._click_handle.revoke()
        self._coordinator.dispose()
        self._current = SpanCache.empty()

    async def aclose(self) -> None:
        """Dispose and wait for outstanding click tasks to finish."""

        self.dispose()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


__all__ = ["ChartUpdater", "ClickHandle"]
