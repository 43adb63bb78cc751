"""metricscope: live metric charts with exemplar-to-trace navigation."""

from . import charts, contracts, telemetry

__all__ = ["charts", "contracts", "telemetry"]
