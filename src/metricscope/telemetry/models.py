"""Trace, span and instrument records consumed by the chart core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Application:
    """A resource that emits telemetry; several instances may share a name."""

    name: str
    instance_id: str


@dataclass(frozen=True, slots=True)
class Span:
    trace_id: str
    span_id: str
    name: str
    source: Application
    start_time: datetime
    end_time: datetime
    parent_span_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000.0


@dataclass(frozen=True, slots=True)
class Trace:
    trace_id: str
    spans: tuple[Span, ...]

    def find_span(self, span_id: str) -> Span | None:
        for span in self.spans:
            if span.span_id == span_id:
                return span
        return None

    @property
    def root(self) -> Span | None:
        for span in self.spans:
            if span.parent_span_id is None:
                return span
        return None


@dataclass(frozen=True, slots=True)
class Instrument:
    """Metric instrument metadata used for value units in tooltips."""

    name: str
    unit: str = ""
    description: str = ""


__all__ = ["Application", "Span", "Trace", "Instrument"]
