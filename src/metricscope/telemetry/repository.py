"""In-memory telemetry store used as the span lookup collaborator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from .models import Application, Span, Trace

logger = logging.getLogger(__name__)


class TelemetryRepository:
    """Thread-safe trace store.

    Spans of a single trace may be ingested over several batches, so a trace can
    be visible while some of its spans are still missing. Readers only ever see
    immutable ``Trace`` snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._spans: dict[str, dict[str, Span]] = {}
        self._applications: dict[tuple[str, str], Application] = {}

    def add_spans(self, spans: Iterable[Span]) -> int:
        added = 0
        with self._lock:
            for span in spans:
                bucket = self._spans.setdefault(span.trace_id, {})
                if span.span_id not in bucket:
                    added += 1
                bucket[span.span_id] = span
                key = (span.source.name, span.source.instance_id)
                self._applications.setdefault(key, span.source)
        if added:
            logger.debug("Ingested %d span(s)", added)
        return added

    def get_trace(self, trace_id: str) -> Trace | None:
        with self._lock:
            bucket = self._spans.get(trace_id)
            if not bucket:
                return None
            spans = tuple(sorted(bucket.values(), key=lambda span: span.start_time))
        return Trace(trace_id=trace_id, spans=spans)

    def get_span(self, trace_id: str, span_id: str) -> Span | None:
        trace = self.get_trace(trace_id)
        if trace is None:
            return None
        return trace.find_span(span_id)

    def applications(self) -> list[Application]:
        with self._lock:
            return list(self._applications.values())

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._spans.values())


__all__ = ["TelemetryRepository"]
