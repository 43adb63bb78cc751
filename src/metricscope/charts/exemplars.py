"""Resolve exemplar points to spans with a cache that is replaced every cycle."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType

from metricscope.telemetry.models import Application, Span
from metricscope.telemetry.titles import shorten_id, span_title

from .formatting import TooltipFormatter
from .models import ExemplarPoint, ResolvedExemplar, SpanKey
from .protocols import SpanLookup

logger = logging.getLogger(__name__)


class SpanCache(Mapping[SpanKey, Span]):
    """Immutable ``SpanKey -> Span`` mapping built for exactly one update cycle."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[SpanKey, Span] | None = None) -> None:
        self._entries: Mapping[SpanKey, Span] = MappingProxyType(dict(entries or {}))

    @classmethod
    def empty(cls) -> SpanCache:
        return cls()

    def __getitem__(self, key: SpanKey) -> Span:
        return self._entries[key]

    def __iter__(self) -> Iterator[SpanKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SpanCache({len(self)} span(s))"


def fallback_title(trace_id: str) -> str:
    return f"Trace: {shorten_id(trace_id)}"


def _lookup(lookup: SpanLookup, key: SpanKey) -> Span | None:
    try:
        return lookup.get_span(key.trace_id, key.span_id)
    except Exception:  # noqa: BLE001 - a failing store must not break rendering
        logger.warning(
            "Span lookup failed for trace %s span %s", key.trace_id, key.span_id, exc_info=True
        )
        return None


def correlate_exemplars(
    points: Iterable[ExemplarPoint],
    previous: SpanCache,
    lookup: SpanLookup,
    *,
    applications: Sequence[Application] = (),
    formatter: TooltipFormatter,
) -> tuple[list[ResolvedExemplar], SpanCache]:
    """Return resolved exemplars in input order and the cache for the next cycle.

    Only spans that were found go into the new cache, so a point whose span has
    not been ingested yet is looked up again on the next cycle.
    """

    resolved: list[ResolvedExemplar] = []
    found: dict[SpanKey, Span] = {}
    dropped = 0
    for point in points:
        if point.trace_id is None or point.span_id is None:
            dropped += 1
            continue
        key = SpanKey(point.trace_id, point.span_id)
        span = previous.get(key)
        if span is None:
            span = found.get(key) or _lookup(lookup, key)
        if span is not None:
            found[key] = span

        title = span_title(span, applications) if span is not None else fallback_title(key.trace_id)
        resolved.append(
            ResolvedExemplar(
                timestamp=point.timestamp,
                value=point.value,
                trace_id=key.trace_id,
                span_id=key.span_id,
                title=title,
                tooltip=formatter.tooltip(title, point.value, point.timestamp),
                span=span,
            )
        )
    if dropped:
        logger.debug("Dropped %d exemplar(s) without trace/span ids", dropped)
    return resolved, SpanCache(found)


__all__ = ["SpanCache", "correlate_exemplars", "fallback_title"]
