"""Number, time and tooltip formatting shared by series and exemplars."""

from __future__ import annotations

import html
import locale
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from metricscope.telemetry.models import Instrument
from metricscope.telemetry.units import resolve_unit

from .models import LocaleHints

logger = logging.getLogger(__name__)

TIME_FORMAT_24H = "%H:%M:%S"
TIME_FORMAT_12H = "%-I:%M:%S %p"
_DEFAULT_PERIODS = ("AM", "PM")


def format_number(value: float, max_decimal_places: int = 3) -> str:
    """Group thousands and keep up to ``max_decimal_places`` significant decimals."""

    text = f"{value:,.{max_decimal_places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        return "0"
    return text


def _locale_info(name: str) -> str:
    item = getattr(locale, name, None)
    langinfo = getattr(locale, "nl_langinfo", None)
    if item is None or langinfo is None:
        return ""
    try:
        return str(langinfo(item))
    except (ValueError, OSError):
        return ""


def use_user_locale() -> str:
    """Switch ``LC_TIME`` to the user's locale (from ``LC_ALL``/``LC_TIME``/``LANG``).

    Python starts with the ``C`` locale, so ``clock = "auto"`` only follows the
    user once this has run. An unavailable locale leaves ``LC_TIME`` unchanged.
    Returns the active ``LC_TIME`` name.
    """

    try:
        return locale.setlocale(locale.LC_TIME, "")
    except locale.Error:
        current = locale.setlocale(locale.LC_TIME)
        logger.warning("User locale is not available; keeping LC_TIME=%s", current)
        return current


def resolve_clock(clock: str) -> str:
    """Map ``auto`` to ``12h``/``24h`` using the process locale's time pattern."""

    if clock in {"12h", "24h"}:
        return clock
    pattern = _locale_info("T_FMT")
    if "%I" in pattern or "%l" in pattern or "%r" in pattern:
        return "12h"
    return "24h"


def locale_hints(clock: str = "auto") -> LocaleHints:
    am = _locale_info("AM_STR") or _DEFAULT_PERIODS[0]
    pm = _locale_info("PM_STR") or _DEFAULT_PERIODS[1]
    resolved = resolve_clock(clock)
    return LocaleHints(
        periods=(am, pm),
        time_format=TIME_FORMAT_24H if resolved == "24h" else TIME_FORMAT_12H,
    )


def to_local(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert an aware timestamp to ``tz`` (or the process-local zone when ``None``)."""

    return value.astimezone(tz)


def format_time(value: datetime, hints: LocaleHints) -> str:
    if hints.time_format == TIME_FORMAT_24H:
        return value.strftime(TIME_FORMAT_24H)
    hour = value.hour % 12 or 12
    period = hints.periods[0] if value.hour < 12 else hints.periods[1]
    return f"{hour}:{value:%M:%S} {period}"


@dataclass(frozen=True)
class TooltipFormatter:
    """Formats value/time tooltips for one chart (fixed instrument, zone and clock)."""

    instrument: Instrument | None = None
    tz: tzinfo | None = None
    hints: LocaleHints = field(default_factory=lambda: locale_hints("24h"))
    max_decimal_places: int = 3

    def format_value(self, value: float) -> str:
        formatted = format_number(value, self.max_decimal_places)
        unit = resolve_unit(self.instrument, pluralize=value != 1)
        return f"{formatted} {unit}" if unit else formatted

    def format_timestamp(self, value: datetime) -> str:
        return format_time(to_local(value, self.tz), self.hints)

    def tooltip(self, title: str, value: float, timestamp: datetime) -> str:
        return (
            f"<b>{html.escape(title)}</b><br />"
            f"Value: {self.format_value(value)}<br />"
            f"Time: {self.format_timestamp(timestamp)}"
        )


__all__ = [
    "TIME_FORMAT_12H",
    "TIME_FORMAT_24H",
    "format_number",
    "format_time",
    "locale_hints",
    "resolve_clock",
    "to_local",
    "use_user_locale",
    "TooltipFormatter",
]
