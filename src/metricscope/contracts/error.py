"""Error envelope helpers and exit codes for metricscope."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    """Stable exit codes shared by the command-line entry points."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5


@dataclass(slots=True)
class ErrorEnvelope:
    """Machine-readable error contract for CLI failures."""

    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Emit standardized JSON error on stderr and exit with a stable code."""

    env = ErrorEnvelope(error=kind, detail=detail, hint=hint)
    sys.stderr.write(env.to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class EnvelopeError(Exception):
    """Base exception that carries an optional hint for the error envelope."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class BadInputError(EnvelopeError):
    """Raised for malformed user input (config files, flags, env overrides)."""


class InvariantError(EnvelopeError):
    """Raised when chart data breaks a structural invariant (e.g. misaligned series)."""


class PolicyError(EnvelopeError):
    """Raised for unsupported operations or contract violations."""


class LifecycleError(PolicyError):
    """Raised when a disposed component is asked to start new work."""


_ENVELOPE_CODES: tuple[tuple[type[Exception], Exit, str], ...] = (
    (BadInputError, Exit.BAD_INPUT, "BadInput"),
    (InvariantError, Exit.INVARIANT, "Invariant"),
    (LifecycleError, Exit.POLICY, "Lifecycle"),
    (PolicyError, Exit.POLICY, "Policy"),
    (FileNotFoundError, Exit.IO, "FileNotFound"),
)


def classify(exc: BaseException) -> tuple[Exit, str]:
    """Map an exception to its exit code and envelope label (most specific first)."""

    for exc_type, exit_code, label in _ENVELOPE_CODES:
        if isinstance(exc, exc_type):
            return exit_code, label
    return Exit.POLICY, "Unhandled"


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Run a CLI handler, turning escaping exceptions into an envelope and exit code."""

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            code, label = classify(exc)
            if label == "Unhandled":
                logger.exception("Unhandled CLI exception")
                detail = f"{type(exc).__name__}: {exc}"
            else:
                detail = str(exc)
            die(code, label, detail, hint=getattr(exc, "hint", None))

    return _wrapped


__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvariantError",
    "PolicyError",
    "LifecycleError",
    "classify",
    "guard_cli",
    "die",
]
