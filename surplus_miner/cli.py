"""Command-line entry point: ``surplus-miner <command>``."""
import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from . import pipeline
from .config import MINER_CATALOG_FILE, get_settings
from .engine.strategy import load_strategy
from .errors import PipelineError
from .seed import seed_miner_catalog

logger = logging.getLogger(__name__)

COMMANDS = ("run", "aggregate", "surplus", "simulate", "report", "seed-miners")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surplus-miner",
        description="Simulate Bitcoin mining on unused nuclear capacity.",
    )
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--data-dir", help="directory holding the input files (env DATA_DIR)")
    parser.add_argument("--output-dir", help="directory for output files (env OUTPUT_DIR, default: data dir)")
    parser.add_argument("--strategy", help="strategy JSON file (env STRATEGY_PATH, default: built-in)")
    parser.add_argument("--start-month", help="first surplus month, YYYY-MM (env SURPLUS_START_MONTH)")
    parser.add_argument("--energy-days", type=float,
                        help="flat day count for the energy report (default: observed days)")
    parser.add_argument("--force", action="store_true", help="seed-miners: overwrite an existing catalog")
    parser.add_argument("--log-level", help="logging level (env LOG_LEVEL, default INFO)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings(
            data_dir=args.data_dir,
            output_dir=args.output_dir,
            strategy_path=args.strategy,
            start_month=args.start_month,
            energy_days_per_month=args.energy_days,
            log_level=args.log_level.upper() if args.log_level else None,
        )
    except (ValidationError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid settings: %s", e)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "seed-miners":
            seed_miner_catalog(settings.input_path(MINER_CATALOG_FILE), force=args.force)
        elif args.command == "aggregate":
            pipeline.run_aggregation(settings)
        elif args.command == "surplus":
            pipeline.run_surplus(settings)
        elif args.command == "simulate":
            pipeline.run_simulation(settings, load_strategy(settings.strategy_path))
        elif args.command == "report":
            pipeline.run_report(settings, load_strategy(settings.strategy_path))
        else:
            pipeline.run_pipeline(settings)
    except PipelineError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
