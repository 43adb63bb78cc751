"""Telemetry collaborators: trace records, the in-memory store and display helpers."""

from .models import Application, Instrument, Span, Trace
from .repository import TelemetryRepository
from .titles import resource_name, shorten_id, span_title
from .units import resolve_unit

__all__ = [
    "Application",
    "Instrument",
    "Span",
    "Trace",
    "TelemetryRepository",
    "resource_name",
    "shorten_id",
    "span_title",
    "resolve_unit",
]
