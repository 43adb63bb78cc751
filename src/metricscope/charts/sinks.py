"""Headless rendering sink that streams chart frames as NDJSON."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, TextIO

from .dto import frame_from_payload
from .models import ChartSeries, LocaleHints, RenderPayload, ResolvedExemplar

if TYPE_CHECKING:  # pragma: no cover - typing only
    import asyncio

    from .pipeline import ClickHandle
    from .span_wait import WaitState

logger = logging.getLogger(__name__)


class NdjsonRenderSink:
    """Writes one JSON frame per line; exemplar clicks can be replayed with ``click``."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._click_handle: ClickHandle | None = None
        self.frames_written = 0

    def initialize(
        self,
        series: Sequence[ChartSeries],
        exemplars: Sequence[ResolvedExemplar],
        in_progress: datetime,
        window_start: datetime,
        locale_hints: LocaleHints,
        click_handle: ClickHandle,
    ) -> None:
        self._click_handle = click_handle
        self._write(series, exemplars, in_progress, window_start, locale_hints)

    def update(
        self,
        series: Sequence[ChartSeries],
        exemplars: Sequence[ResolvedExemplar],
        in_progress: datetime,
        window_start: datetime,
    ) -> None:
        self._write(series, exemplars, in_progress, window_start, None)

    def click(self, trace_id: str, span_id: str) -> asyncio.Task[WaitState | None] | None:
        if self._click_handle is None:
            logger.debug("Click before the chart was initialized; ignoring")
            return None
        return self._click_handle(trace_id, span_id)

    def _write(
        self,
        series: Sequence[ChartSeries],
        exemplars: Sequence[ResolvedExemplar],
        in_progress: datetime,
        window_start: datetime,
        locale_hints: LocaleHints | None,
    ) -> None:
        payload = RenderPayload(
            x_values=series[0].timestamps if series else (),
            series=tuple(series),
            exemplars=tuple(exemplars),
            in_progress=in_progress,
            window_start=window_start,
            locale_hints=locale_hints,
            tick_update=locale_hints is None,
        )
        self._stream.write(frame_from_payload(payload).model_dump_json() + "\n")
        self._stream.flush()
        self.frames_written += 1


__all__ = ["NdjsonRenderSink"]
