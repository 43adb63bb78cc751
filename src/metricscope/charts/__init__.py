"""Chart core: series building, exemplar correlation, span waits and the update pipeline."""

from .exemplars import SpanCache, correlate_exemplars
from .formatting import TooltipFormatter, format_number, format_time, locale_hints
from .models import (
    ChartSeries,
    ExemplarPoint,
    LocaleHints,
    RenderPayload,
    ResolvedExemplar,
    SampleBucket,
    SeriesInput,
    SeriesKind,
    SpanKey,
)
from .pipeline import ChartUpdater, ClickHandle
from .protocols import Navigator, PromptHandle, PromptResult, PromptService, RenderSink, SpanLookup
from .series import build_chart, build_series, difference_values
from .span_wait import SpanWaitCoordinator, WaitSession, WaitState

__all__ = [
    "ChartSeries",
    "ChartUpdater",
    "ClickHandle",
    "ExemplarPoint",
    "LocaleHints",
    "Navigator",
    "PromptHandle",
    "PromptResult",
    "PromptService",
    "RenderPayload",
    "RenderSink",
    "ResolvedExemplar",
    "SampleBucket",
    "SeriesInput",
    "SeriesKind",
    "SpanCache",
    "SpanKey",
    "SpanLookup",
    "SpanWaitCoordinator",
    "TooltipFormatter",
    "WaitSession",
    "WaitState",
    "build_chart",
    "build_series",
    "correlate_exemplars",
    "difference_values",
    "format_number",
    "format_time",
    "locale_hints",
]
