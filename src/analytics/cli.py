"""CLI entry-point for SmartEnergy Analytics.

Usage examples
--------------
# Batch mode (CSV input):
python -m src.analytics --input data/readings.csv

# Fixed period, hourly breakdown:
python -m src.analytics --input data/readings.csv \
    --start 2026-01-05T00:00:00Z --end 2026-01-06T00:00:00Z --granularity hourly

# Watch mode (tail a JSONL stream of readings):
python -m src.analytics --input data/readings_live.jsonl --watch
"""

from __future__ import annotations

import argparse

from src.analytics.loaders import parse_ts
from src.analytics.pipeline import run_pipeline, watch_pipeline
from src.contracts.enums import Granularity
from src.shared.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="analytics",
        description="SmartEnergy Analytics — consumption stats, costs, anomalies, alerts",
    )
    p.add_argument(
        "--input",
        default="data/readings.csv",
        help="Readings file (CSV or JSONL). Format auto-detected by extension. "
             "Default: data/readings.csv",
    )
    p.add_argument(
        "--out-dir",
        default="out",
        help="Output directory. Default: out/",
    )
    p.add_argument(
        "--config-dir",
        default="config",
        help="Directory with tariffs.yaml, alerts.yaml, analysis.yaml. Default: config/",
    )
    p.add_argument(
        "--start",
        type=parse_ts,
        default=None,
        help="Period start (ISO-8601). Default: midnight of the earliest reading.",
    )
    p.add_argument(
        "--end",
        type=parse_ts,
        default=None,
        help="Period end, exclusive (ISO-8601). Default: midnight after the latest reading.",
    )
    p.add_argument(
        "--granularity",
        choices=[g.value for g in Granularity],
        default=None,
        help="Breakdown bucket size. Default: from analysis.yaml (daily).",
    )
    p.add_argument(
        "--horizon-days",
        type=float,
        default=None,
        help="Projection horizon in days. Default: from analysis.yaml (30).",
    )
    p.add_argument(
        "--now",
        type=parse_ts,
        default=None,
        help="Evaluation instant for alerts and simulations. Default: period end.",
    )
    # Watch / live mode flags
    p.add_argument(
        "--watch",
        action="store_true",
        default=False,
        help="Enable watch mode: tail the input JSONL and re-analyse on new data.",
    )
    p.add_argument(
        "--poll-interval-ms",
        type=int,
        default=1000,
        help="Poll interval for watch mode, ms (default: 1000).",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.watch:
        watch_pipeline(
            input_path=args.input,
            out_dir=args.out_dir,
            config_dir=args.config_dir,
            granularity=args.granularity,
            horizon_days=args.horizon_days,
            poll_interval_sec=args.poll_interval_ms / 1000.0,
        )
    else:
        run_pipeline(
            input_path=args.input,
            out_dir=args.out_dir,
            config_dir=args.config_dir,
            period_start=args.start,
            period_end=args.end,
            granularity=args.granularity,
            horizon_days=args.horizon_days,
            now=args.now,
        )


if __name__ == "__main__":
    main()
