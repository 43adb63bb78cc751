"""Chart-ready records passed between the series builder, correlator and sinks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import NamedTuple

from metricscope.telemetry.models import Span


class SeriesKind(StrEnum):
    """How raw sample values are plotted."""

    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True, slots=True)
class SampleBucket:
    """One slot of the shared x-axis; ``value`` is ``None`` for a gap."""

    timestamp: datetime
    value: float | None


@dataclass(frozen=True, slots=True)
class SeriesInput:
    name: str
    buckets: tuple[SampleBucket, ...]
    percentile: int | None = None


@dataclass(frozen=True, slots=True)
class ChartSeries:
    name: str
    timestamps: tuple[datetime, ...]
    values: tuple[float | None, ...]
    diff_values: tuple[float | None, ...]
    tooltips: tuple[str | None, ...]
    percentile: int | None = None

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True, slots=True)
class ExemplarPoint:
    timestamp: datetime
    value: float
    trace_id: str | None = None
    span_id: str | None = None


class SpanKey(NamedTuple):
    trace_id: str
    span_id: str


@dataclass(frozen=True, slots=True)
class ResolvedExemplar:
    timestamp: datetime
    value: float
    trace_id: str
    span_id: str
    title: str
    tooltip: str
    span: Span | None = None

    @property
    def key(self) -> SpanKey:
        return SpanKey(self.trace_id, self.span_id)


@dataclass(frozen=True, slots=True)
class LocaleHints:
    periods: tuple[str, str]
    time_format: str


@dataclass(frozen=True, slots=True)
class RenderPayload:
    x_values: tuple[datetime, ...]
    series: tuple[ChartSeries, ...]
    exemplars: tuple[ResolvedExemplar, ...]
    in_progress: datetime
    window_start: datetime
    locale_hints: LocaleHints | None
    tick_update: bool


__all__ = [
    "SeriesKind",
    "SampleBucket",
    "SeriesInput",
    "ChartSeries",
    "ExemplarPoint",
    "SpanKey",
    "ResolvedExemplar",
    "LocaleHints",
    "RenderPayload",
]
