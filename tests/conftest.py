import logging
import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep METRICSCOPE_* overrides from the developer shell out of config tests."""

    for key in list(os.environ):
        if key.startswith("METRICSCOPE_"):
            monkeypatch.delenv(key, raising=False)


def pytest_configure(config: pytest.Config) -> None:
    """Ensure custom marks remain registered even when pyproject isn't picked up."""
    config.addinivalue_line("markers", "tui: Textual dependent tests")


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo configure_logging() so caplog keeps seeing package records."""

    logger = logging.getLogger("metricscope")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            handler.close()
            logger.removeHandler(handler)
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
