"""Display names for UCUM-style instrument units."""

from __future__ import annotations

from .models import Instrument

# singular, plural
_KNOWN_UNITS: dict[str, tuple[str, str]] = {
    "ns": ("nanosecond", "nanoseconds"),
    "us": ("microsecond", "microseconds"),
    "ms": ("millisecond", "milliseconds"),
    "s": ("second", "seconds"),
    "min": ("minute", "minutes"),
    "h": ("hour", "hours"),
    "d": ("day", "days"),
    "By": ("byte", "bytes"),
    "KiBy": ("kibibyte", "kibibytes"),
    "MiBy": ("mebibyte", "mebibytes"),
    "GiBy": ("gibibyte", "gibibytes"),
    "KBy": ("kilobyte", "kilobytes"),
    "MBy": ("megabyte", "megabytes"),
    "GBy": ("gigabyte", "gigabytes"),
    "%": ("percent", "percent"),
}


def _pluralize_word(word: str) -> str:
    if word.endswith("s"):
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def _resolve_part(part: str, pluralize: bool) -> str:
    if part.startswith("{") and part.endswith("}"):
        word = part[1:-1]
        return _pluralize_word(word) if pluralize else word
    known = _KNOWN_UNITS.get(part)
    if known is not None:
        return known[1] if pluralize else known[0]
    return part


def resolve_unit(instrument: Instrument | None, *, pluralize: bool, title_case: bool = False) -> str:
    """Return the displayed unit for ``instrument`` (empty when dimensionless).

    ``{request}`` annotations become plain words, ``By``/``ms``-style codes become
    names, and rates such as ``By/s`` render as ``bytes per second``.
    """

    if instrument is None:
        return ""
    unit = instrument.unit.strip()
    if not unit or unit == "1":
        return ""
    if "/" in unit:
        numerator, _, denominator = unit.partition("/")
        text = f"{_resolve_part(numerator, pluralize)} per {_resolve_part(denominator, False)}"
    else:
        text = _resolve_part(unit, pluralize)
    return text.title() if title_case else text


__all__ = ["resolve_unit"]
