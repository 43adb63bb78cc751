"""Error contracts shared across metricscope."""

from .error import (
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    LifecycleError,
    PolicyError,
    classify,
    die,
    guard_cli,
)

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
