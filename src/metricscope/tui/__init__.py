"""Textual front-end for metricscope charts."""

from .demo import DemoFeed

__all__ = ["DemoFeed", "ExemplarChartApp", "run_dashboard"]


def __getattr__(name: str):  # pragma: no cover - thin re-export shim
    if name in {"ExemplarChartApp", "run_dashboard"}:
        from . import app

        return getattr(app, name)
    raise AttributeError(name)
