"""Interfaces of the collaborators the chart core talks to."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - typing only
    from metricscope.telemetry.models import Span

    from .models import ChartSeries, LocaleHints, ResolvedExemplar
    from .pipeline import ClickHandle


class PromptResult(StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@runtime_checkable
class SpanLookup(Protocol):
    """Read-only span store; safe to call concurrently."""

    def get_span(self, trace_id: str, span_id: str) -> Span | None: ...


@runtime_checkable
class RenderSink(Protocol):
    """Surface that draws the chart and reports exemplar clicks via the click handle."""

    def initialize(
        self,
        series: Sequence[ChartSeries],
        exemplars: Sequence[ResolvedExemplar],
        in_progress: datetime,
        window_start: datetime,
        locale_hints: LocaleHints,
        click_handle: ClickHandle,
    ) -> None: ...

    def update(
        self,
        series: Sequence[ChartSeries],
        exemplars: Sequence[ResolvedExemplar],
        in_progress: datetime,
        window_start: datetime,
    ) -> None: ...


class PromptHandle(Protocol):
    @property
    def result(self) -> asyncio.Future[PromptResult]: ...


@runtime_checkable
class PromptService(Protocol):
    """Shows a prompt with a single cancel action.

    ``show`` must be called from the running event loop; the returned handle's
    ``result`` resolves when the user cancels or the prompt is dismissed.
    """

    def show(self, message: str) -> PromptHandle: ...

    def dismiss(self, handle: PromptHandle, outcome: PromptResult) -> None: ...


@runtime_checkable
class Navigator(Protocol):
    def go_to(self, trace_id: str, span_id: str) -> None: ...


__all__ = [
    "PromptResult",
    "SpanLookup",
    "RenderSink",
    "PromptHandle",
    "PromptService",
    "Navigator",
]
