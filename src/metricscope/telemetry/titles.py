"""Human readable names for spans and their source applications."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Application, Span

_INSTANCE_SUFFIX_LENGTH = 7
_ELLIPSIS = "…"


def shorten_id(value: str, length: int = 7) -> str:
    """Return a display form of an opaque id.

    At most ``length`` characters are kept and at least the final character is
    always elided, so the shortened form never reads as the complete id.
    """

    if length <= 0:
        raise ValueError("length must be > 0")
    if not value:
        return value
    keep = min(length, max(len(value) - 1, 1))
    return value[:keep] + _ELLIPSIS


def resource_name(application: Application, applications: Iterable[Application]) -> str:
    """Application name, suffixed with a short instance id when the name is ambiguous."""

    shared = [
        app
        for app in applications
        if app.name == application.name and app.instance_id != application.instance_id
    ]
    if not shared:
        return application.name
    return f"{application.name}-{application.instance_id[:_INSTANCE_SUFFIX_LENGTH]}"


def span_title(span: Span, applications: Iterable[Application]) -> str:
    return f"{resource_name(span.source, applications)}: {span.name}"


__all__ = ["shorten_id", "resource_name", "span_title"]
