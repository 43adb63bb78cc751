"""Turn aligned sample buckets into plotted chart series."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from metricscope.contracts.error import InvariantError

from .formatting import TooltipFormatter
from .models import ChartSeries, SeriesInput, SeriesKind


def difference_values(values: Sequence[float | None]) -> tuple[float | None, ...]:
    """Per-slot increase of a monotonic counter.

    The first slot, and any slot whose own or previous value is missing, has no
    difference; gaps are never bridged.
    """

    diffs: list[float | None] = []
    previous: float | None = None
    for index, value in enumerate(values):
        if index == 0 or value is None or previous is None:
            diffs.append(None)
        else:
            diffs.append(value - previous)
        previous = value
    return tuple(diffs)


def build_series(
    series_input: SeriesInput,
    kind: SeriesKind,
    *,
    formatter: TooltipFormatter,
) -> ChartSeries:
    values = tuple(bucket.value for bucket in series_input.buckets)
    diffs = difference_values(values) if kind is SeriesKind.COUNTER else values

    tooltips: list[str | None] = []
    for bucket, plotted in zip(series_input.buckets, diffs):
        if plotted is None:
            tooltips.append(None)
        else:
            tooltips.append(formatter.tooltip(series_input.name, plotted, bucket.timestamp))

    return ChartSeries(
        name=series_input.name,
        timestamps=tuple(bucket.timestamp for bucket in series_input.buckets),
        percentile=series_input.percentile,
        values=values,
        diff_values=diffs,
        tooltips=tuple(tooltips),
    )


def build_chart(
    inputs: Sequence[SeriesInput],
    kind: SeriesKind,
    *,
    formatter: TooltipFormatter,
) -> tuple[tuple[datetime, ...], tuple[ChartSeries, ...]]:
    """Build every series of a chart and return them with the shared x-axis."""

    if not inputs:
        return (), ()
    x_values = tuple(bucket.timestamp for bucket in inputs[0].buckets)
    for series_input in inputs[1:]:
        axis = tuple(bucket.timestamp for bucket in series_input.buckets)
        if axis != x_values:
            raise InvariantError(
                f"Series {series_input.name!r} is not aligned with {inputs[0].name!r}: "
                f"{len(axis)} slot(s) vs {len(x_values)}",
                hint="Fill missing slots with null values instead of omitting them.",
            )
    if any(later <= earlier for earlier, later in zip(x_values, x_values[1:])):
        raise InvariantError("Sample buckets must be strictly ordered by timestamp")
    return x_values, tuple(build_series(item, kind, formatter=formatter) for item in inputs)


__all__ = ["difference_values", "build_series", "build_chart"]
