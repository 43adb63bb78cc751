"""Pydantic models describing a chart frame as sent to a rendering surface."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from .models import ChartSeries, RenderPayload, ResolvedExemplar


class FrameKind(StrEnum):
    INITIALIZE = "initialize"
    UPDATE = "update"


class ChartTraceModel(BaseModel):
    """One plotted series; ``y`` holds the difference values for counters."""

    name: str
    percentile: int | None = None
    x: list[datetime]
    y: list[float | None]
    tooltips: list[str | None]

    @model_validator(mode="after")
    def _check_lengths(self) -> ChartTraceModel:
        if not len(self.x) == len(self.y) == len(self.tooltips):
            raise ValueError("x, y and tooltips must have the same length")
        return self


class ExemplarRefModel(BaseModel):
    trace_id: str
    span_id: str


class ExemplarTraceModel(BaseModel):
    name: str = "exemplars"
    x: list[datetime] = Field(default_factory=list)
    y: list[float] = Field(default_factory=list)
    tooltips: list[str] = Field(default_factory=list)
    trace_data: list[ExemplarRefModel] = Field(default_factory=list)


class UserLocaleModel(BaseModel):
    time: str = Field(..., description="strftime-style pattern for axis ticks.")
    periods: list[str] = Field(..., min_length=2, max_length=2)


class ChartFrameModel(BaseModel):
    kind: FrameKind
    traces: list[ChartTraceModel]
    exemplars: ExemplarTraceModel
    in_progress: datetime
    window_start: datetime
    locale: UserLocaleModel | None = None


def trace_model(series: ChartSeries) -> ChartTraceModel:
    return ChartTraceModel(
        name=series.name,
        percentile=series.percentile,
        x=list(series.timestamps),
        y=list(series.diff_values),
        tooltips=list(series.tooltips),
    )


def exemplar_model(exemplars: Sequence[ResolvedExemplar]) -> ExemplarTraceModel:
    model = ExemplarTraceModel()
    for exemplar in exemplars:
        model.x.append(exemplar.timestamp)
        model.y.append(exemplar.value)
        model.tooltips.append(exemplar.tooltip)
        model.trace_data.append(
            ExemplarRefModel(trace_id=exemplar.trace_id, span_id=exemplar.span_id)
        )
    return model


def frame_from_payload(payload: RenderPayload) -> ChartFrameModel:
    hints = payload.locale_hints
    return ChartFrameModel(
        kind=FrameKind.UPDATE if payload.tick_update else FrameKind.INITIALIZE,
        traces=[trace_model(series) for series in payload.series],
        exemplars=exemplar_model(payload.exemplars),
        in_progress=payload.in_progress,
        window_start=payload.window_start,
        locale=(
            UserLocaleModel(time=hints.time_format, periods=list(hints.periods))
            if hints is not None
            else None
        ),
    )


__all__ = [
    "FrameKind",
    "ChartTraceModel",
    "ExemplarRefModel",
    "ExemplarTraceModel",
    "UserLocaleModel",
    "ChartFrameModel",
    "frame_from_payload",
]
