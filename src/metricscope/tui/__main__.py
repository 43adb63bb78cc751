"""CLI entry point for the metricscope terminal dashboard."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from metricscope.charts.formatting import use_user_locale
from metricscope.config import load_app_config
from metricscope.contracts.error import BadInputError, guard_cli
from metricscope.logs import configure_logging

from .app import run_dashboard


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Live counter chart whose exemplars open the traces that produced them.",
    )
    parser.add_argument("--config", default=None, help="Optional TOML config file.")
    parser.add_argument(
        "--seed", type=int, default=7, help="Seed for the synthetic feed (default: %(default)s)"
    )
    parser.add_argument(
        "--ingest-delay",
        type=int,
        default=3,
        help="Ticks before an exemplar's span is ingested (default: %(default)s)",
    )
    parser.add_argument(
        "--window-buckets",
        type=int,
        default=60,
        help="Buckets kept in the rolling window (default: %(default)s)",
    )
    parser.add_argument(
        "--tick-seconds",
        type=float,
        default=1.0,
        help="Seconds between refresh ticks (default: %(default)s)",
    )
    parser.add_argument("--log-json", action="store_true", help="Write JSON log records.")
    parser.add_argument("--log-file", default=None, help="Write logs to a rotating file.")
    return parser


@guard_cli
def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.ingest_delay < 1:
        raise BadInputError("--ingest-delay must be >= 1")
    if args.window_buckets < 2:
        raise BadInputError("--window-buckets must be >= 2")
    if args.tick_seconds <= 0:
        raise BadInputError("--tick-seconds must be > 0")
    config = load_app_config(args.config)
    configure_logging(
        use_json=args.log_json or config.logging.json,
        log_file=args.log_file or config.logging.file,
        level=config.logging.level,
        console=False,
    )
    if config.chart.clock == "auto":
        use_user_locale()
    run_dashboard(
        config,
        seed=args.seed,
        ingest_delay=args.ingest_delay,
        window_buckets=args.window_buckets,
        bucket_seconds=args.tick_seconds,
    )


if __name__ == "__main__":
    main()
