from __future__ import annotations

from datetime import timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from metricscope.charts.formatting import TooltipFormatter, locale_hints
from metricscope.charts.models import SampleBucket, SeriesInput, SeriesKind
from metricscope.charts.series import build_chart, build_series, difference_values
from metricscope.contracts.error import InvariantError
from metricscope.telemetry.models import Instrument
from tests.util.fakes import T0

FORMATTER = TooltipFormatter(tz=T0.tzinfo, hints=locale_hints("24h"))

maybe_values = st.lists(
    st.one_of(st.none(), st.integers(min_value=0, max_value=10**9).map(float)),
    min_size=1,
    max_size=40,
)


def _input(name: str, values: list[float | None], *, start_offset: int = 0) -> SeriesInput:
    return SeriesInput(
        name=name,
        buckets=tuple(
            SampleBucket(timestamp=T0 + timedelta(seconds=start_offset + index), value=value)
            for index, value in enumerate(values)
        ),
    )


def test_counter_differences_do_not_bridge_gaps() -> None:
    series = build_series(_input("requests", [1, 3, None, 7]), SeriesKind.COUNTER, formatter=FORMATTER)

    assert series.values == (1, 3, None, 7)
    assert series.diff_values == (None, 2, None, None)


def test_gauge_plots_raw_values() -> None:
    series = build_series(_input("queue", [4, None, 2.5]), SeriesKind.GAUGE, formatter=FORMATTER)

    assert series.diff_values == series.values == (4, None, 2.5)


def test_tooltips_follow_plotted_values() -> None:
    instrument = Instrument(name="http.requests", unit="{request}")
    formatter = TooltipFormatter(instrument=instrument, tz=T0.tzinfo, hints=locale_hints("24h"))

    series = build_series(_input("GET /", [10, 11, None, 20]), SeriesKind.COUNTER, formatter=formatter)

    assert series.tooltips[0] is None
    assert series.tooltips[1] == "<b>GET /</b><br />Value: 1 request<br />Time: 12:00:01"
    assert series.tooltips[2] is None
    assert series.tooltips[3] is None


def test_sequences_share_axis_length() -> None:
    series = build_series(_input("x", [None, None, 1]), SeriesKind.COUNTER, formatter=FORMATTER)

    assert len(series.timestamps) == len(series.values) == len(series.diff_values) == len(series.tooltips) == 3


@given(maybe_values)
def test_counter_difference_property(values: list[float | None]) -> None:
    diffs = difference_values(values)

    assert diffs[0] is None
    for index in range(1, len(values)):
        current, previous = values[index], values[index - 1]
        if current is None or previous is None:
            assert diffs[index] is None
        else:
            assert diffs[index] == current - previous


@given(maybe_values)
def test_gauge_difference_property(values: list[float | None]) -> None:
    series = build_series(_input("g", values), SeriesKind.GAUGE, formatter=FORMATTER)

    assert list(series.diff_values) == values


def test_build_chart_returns_shared_axis() -> None:
    x_values, series = build_chart(
        [_input("a", [1, 2]), _input("b", [None, 5])], SeriesKind.COUNTER, formatter=FORMATTER
    )

    assert x_values == (T0, T0 + timedelta(seconds=1))
    assert [item.name for item in series] == ["a", "b"]


def test_build_chart_rejects_misaligned_series() -> None:
    with pytest.raises(InvariantError) as excinfo:
        build_chart(
            [_input("a", [1, 2, 3]), _input("b", [1, 2])], SeriesKind.GAUGE, formatter=FORMATTER
        )
    assert excinfo.value.hint is not None


def test_build_chart_rejects_shifted_axis() -> None:
    with pytest.raises(InvariantError):
        build_chart(
            [_input("a", [1, 2]), _input("b", [1, 2], start_offset=1)],
            SeriesKind.GAUGE,
            formatter=FORMATTER,
        )


def test_build_chart_empty() -> None:
    assert build_chart([], SeriesKind.GAUGE, formatter=FORMATTER) == ((), ())
