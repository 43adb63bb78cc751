from __future__ import annotations

import asyncio
from datetime import UTC, timedelta

import pytest

from metricscope.charts.models import ExemplarPoint, SampleBucket, SeriesInput, SeriesKind, SpanKey
from metricscope.charts.pipeline import ChartUpdater, ClickHandle
from metricscope.charts.span_wait import SpanWaitCoordinator, WaitState
from metricscope.config import AppConfig
from metricscope.contracts.error import LifecycleError
from tests.util.fakes import T0, DictLookup, FakeLookup, FakePrompt, RecordingNavigator, RecordingSink, make_span


def _inputs(values: list[float | None]) -> list[SeriesInput]:
    return [
        SeriesInput(
            name="requests",
            buckets=tuple(
                SampleBucket(T0 + timedelta(seconds=index), value) for index, value in enumerate(values)
            ),
        )
    ]


def _updater(lookup=None, *, poll_interval: float = 0.01):
    lookup = lookup if lookup is not None else DictLookup()
    sink = RecordingSink()
    prompt = FakePrompt()
    navigator = RecordingNavigator()
    coordinator = SpanWaitCoordinator(lookup, prompt, navigator, poll_interval=poll_interval)
    updater = ChartUpdater(
        sink, lookup, coordinator, duration=timedelta(minutes=5), tz=UTC, clock="24h"
    )
    return updater, sink, prompt, navigator


EXEMPLAR = ExemplarPoint(timestamp=T0, value=2.0, trace_id="abc", span_id="1")


def test_first_tick_is_promoted_to_full_redraw() -> None:
    updater, sink, _, _ = _updater()

    payload = updater.update(_inputs([1, 2]), SeriesKind.COUNTER, [], tick_update=True, in_progress=T0)

    assert not payload.tick_update
    assert len(sink.initialized) == 1
    assert sink.updated == []
    assert isinstance(sink.click_handle, ClickHandle)


def test_tick_updates_reuse_handle_and_skip_locale() -> None:
    updater, sink, _, _ = _updater()
    updater.update(_inputs([1, 2]), SeriesKind.COUNTER, [], tick_update=False, in_progress=T0)
    handle = sink.click_handle

    payload = updater.update(_inputs([1, 2]), SeriesKind.COUNTER, [], tick_update=True, in_progress=T0)

    assert payload.tick_update
    assert payload.locale_hints is None
    assert len(sink.updated) == 1
    assert sink.click_handle is handle
    assert not handle.revoked


def test_full_redraw_revokes_previous_handle() -> None:
    updater, sink, _, _ = _updater()
    updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=False, in_progress=T0)
    old = sink.click_handle

    updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=False, in_progress=T0)

    assert old.revoked
    assert old("abc", "1") is None
    assert sink.click_handle is not old
    assert sink.initialized[-1]["locale_hints"].time_format == "%H:%M:%S"


def test_window_boundaries() -> None:
    updater, sink, _, _ = _updater()
    in_progress = T0 + timedelta(minutes=10)

    payload = updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=False, in_progress=in_progress)

    assert payload.in_progress == in_progress
    assert payload.window_start == in_progress - timedelta(minutes=5)
    assert sink.initialized[0]["window_start"] == payload.window_start


def test_cache_is_swapped_each_cycle() -> None:
    span = make_span("abc", "1")
    lookup = DictLookup([span])
    updater, _, _, _ = _updater(lookup)

    updater.update(_inputs([1]), SeriesKind.GAUGE, [EXEMPLAR], tick_update=False, in_progress=T0)
    first = updater.span_cache
    updater.update(_inputs([1]), SeriesKind.GAUGE, [EXEMPLAR], tick_update=True, in_progress=T0)
    second = updater.span_cache
    updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=True, in_progress=T0)

    assert first is not second
    assert dict(first) == dict(second) == {SpanKey("abc", "1"): span}
    assert lookup.calls == [("abc", "1")]
    assert len(updater.span_cache) == 0


def test_series_payload_plots_differences() -> None:
    updater, sink, _, _ = _updater()

    updater.update(_inputs([1, 3, None, 7]), SeriesKind.COUNTER, [], tick_update=False, in_progress=T0)

    assert sink.initialized[0]["series"][0].diff_values == (None, 2, None, None)


def test_click_navigates_through_coordinator() -> None:
    lookup = FakeLookup(make_span("abc", "1"), misses=2)
    updater, sink, prompt, navigator = _updater(lookup)

    async def scenario() -> WaitState | None:
        updater.update(_inputs([1]), SeriesKind.GAUGE, [EXEMPLAR], tick_update=False, in_progress=T0)
        task = sink.click_handle("abc", "1")
        assert task is not None
        assert task in updater.pending
        return await task

    assert asyncio.run(scenario()) is WaitState.RESOLVED
    assert navigator.calls == [("abc", "1")]
    assert len(prompt.handles) == 1


def test_dispose_stops_clicks_and_updates() -> None:
    updater, sink, _, navigator = _updater()
    updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=False, in_progress=T0)
    handle = sink.click_handle

    updater.dispose()
    updater.dispose()

    assert updater.disposed
    assert handle.revoked
    assert updater.coordinator.disposed
    assert handle("abc", "1") is None
    assert updater.handle_click("abc", "1") is None
    with pytest.raises(LifecycleError):
        updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=True, in_progress=T0)
    assert navigator.calls == []


def test_aclose_waits_for_outstanding_click() -> None:
    lookup = FakeLookup()
    updater, sink, prompt, navigator = _updater(lookup)

    async def scenario() -> WaitState | None:
        updater.update(_inputs([1]), SeriesKind.GAUGE, [EXEMPLAR], tick_update=False, in_progress=T0)
        task = sink.click_handle("abc", "1")
        for _ in range(100):
            if prompt.handles:
                break
            await asyncio.sleep(0)
        await updater.aclose()
        assert task.done()
        assert not updater.pending
        return task.result()

    assert asyncio.run(scenario()) is WaitState.SUPERSEDED
    assert navigator.calls == []
    assert prompt.dismissals == []


def test_from_config_applies_policy() -> None:
    config = AppConfig()
    config.chart.duration_seconds = 60
    config.chart.timezone = "UTC"
    config.chart.clock = "12h"
    config.exemplars.poll_interval = 0.25
    sink = RecordingSink()

    updater = ChartUpdater.from_config(config, sink, DictLookup(), FakePrompt(), RecordingNavigator())
    payload = updater.update(_inputs([1]), SeriesKind.GAUGE, [], tick_update=False, in_progress=T0)

    assert updater.coordinator.poll_interval == 0.25
    assert payload.window_start == T0 - timedelta(seconds=60)
    assert payload.locale_hints is not None
    assert payload.locale_hints.time_format == "%-I:%M:%S %p"
