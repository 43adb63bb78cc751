"""Deterministic synthetic feed for the terminal dashboard."""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from metricscope.charts.models import ExemplarPoint, SampleBucket, SeriesInput
from metricscope.telemetry.models import Application, Instrument, Span
from metricscope.telemetry.repository import TelemetryRepository

DEMO_INSTRUMENT = Instrument(
    name="http.server.request.count",
    unit="{request}",
    description="Requests handled by the orders API.",
)
DEMO_ROUTES = ("GET /api/orders", "POST /api/orders")
_APPLICATIONS = (
    Application(name="orders-api", instance_id="a1f03c9e2b"),
    Application(name="orders-api", instance_id="7d52be1104"),
    Application(name="payments", instance_id="5e0c77aa01"),
)


@dataclass
class _PendingIngest:
    due_tick: int
    spans: list[Span]


@dataclass
class DemoFeed:
    """Rolling counter window plus exemplars whose spans arrive late.

    Each exemplar's trace is ingested in two batches: the root span one tick
    before ``ingest_delay`` elapses and the exemplar's own span once it has,
    so the dashboard sees partial traces and has to wait for the span.
    """

    repository: TelemetryRepository
    seed: int = 7
    bucket_seconds: float = 1.0
    window_buckets: int = 60
    ingest_delay: int = 3
    exemplar_every: int = 4
    gap_probability: float = 0.05
    start: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        if self.window_buckets <= 1:
            raise ValueError("window_buckets must be > 1")
        if self.ingest_delay < 1:
            raise ValueError("ingest_delay must be >= 1")
        self._rng = random.Random(self.seed)
        self._tick = 0
        self._totals = {route: 0.0 for route in DEMO_ROUTES}
        self._timestamps: deque[datetime] = deque(maxlen=self.window_buckets)
        self._values: dict[str, deque[float | None]] = {
            route: deque(maxlen=self.window_buckets) for route in DEMO_ROUTES
        }
        self._exemplars: deque[ExemplarPoint] = deque()
        self._pending: list[_PendingIngest] = []

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def in_progress(self) -> datetime:
        return self.start + timedelta(seconds=self._tick * self.bucket_seconds)

    def advance(self) -> None:
        """Append one bucket per route and ingest spans that are now due."""

        self._tick += 1
        now = self.in_progress
        self._timestamps.append(now)
        increments: dict[str, float] = {}
        for route in DEMO_ROUTES:
            increment = float(self._rng.randint(5, 40))
            increments[route] = increment
            self._totals[route] += increment
            gap = self._rng.random() < self.gap_probability
            self._values[route].append(None if gap else self._totals[route])

        if self._tick % self.exemplar_every == 0:
            self._emit_exemplar(now, increments)

        window_start = self._timestamps[0]
        while self._exemplars and self._exemplars[0].timestamp < window_start:
            self._exemplars.popleft()

        due = [item for item in self._pending if item.due_tick <= self._tick]
        self._pending = [item for item in self._pending if item.due_tick > self._tick]
        for item in due:
            self.repository.add_spans(item.spans)

    def series(self) -> list[SeriesInput]:
        timestamps = list(self._timestamps)
        return [
            SeriesInput(
                name=route,
                buckets=tuple(
                    SampleBucket(timestamp=ts, value=value)
                    for ts, value in zip(timestamps, self._values[route])
                ),
            )
            for route in DEMO_ROUTES
        ]

    def exemplars(self) -> list[ExemplarPoint]:
        return list(self._exemplars)

    def _new_id(self, length: int) -> str:
        return "".join(self._rng.choice("0123456789abcdef") for _ in range(length))

    def _emit_exemplar(self, now: datetime, increments: dict[str, float]) -> None:
        trace_id = self._new_id(32)
        root_id = self._new_id(16)
        span_id = self._new_id(16)
        route = self._rng.choice(DEMO_ROUTES)
        source = self._rng.choice(_APPLICATIONS[:2])
        duration = timedelta(milliseconds=self._rng.randint(4, 250))
        root = Span(
            trace_id=trace_id,
            span_id=root_id,
            name=route,
            source=source,
            start_time=now - duration,
            end_time=now,
            attributes={"http.route": route.split(" ", 1)[1]},
        )
        child = Span(
            trace_id=trace_id,
            span_id=span_id,
            name="charge card" if route.startswith("POST") else "load orders",
            source=_APPLICATIONS[2] if route.startswith("POST") else source,
            start_time=now - duration / 2,
            end_time=now,
            parent_span_id=root_id,
        )
        self._exemplars.append(
            ExemplarPoint(
                timestamp=now,
                value=increments[route],
                trace_id=trace_id,
                span_id=span_id,
            )
        )
        if self.ingest_delay > 1:
            self._pending.append(_PendingIngest(self._tick + self.ingest_delay - 1, [root]))
            self._pending.append(_PendingIngest(self._tick + self.ingest_delay, [child]))
        else:
            self._pending.append(_PendingIngest(self._tick + 1, [root, child]))


__all__ = ["DEMO_INSTRUMENT", "DEMO_ROUTES", "DemoFeed"]
