"""Batch pipeline: aggregate -> surplus -> simulate -> report.

Each stage reads its inputs from disk and writes its output before the next
stage starts; later stages read the earlier stages' persisted CSVs.
"""
import logging
from typing import Dict, List, Optional

from .config import (
    AVAILABILITY_FILE, ENERGY_USAGE_FILE, HASH_RATE_FILE, HASH_RATE_SERIES,
    MARKET_PRICE_FILE, MARKET_PRICE_SERIES, MINER_CATALOG_FILE, MINING_MONTHLY_FILE,
    PRODUCTION_FILE, SIMULATION_FILE, SUMMARY_FILE, SURPLUS_FILE,
    TOTAL_BITCOINS_FILE, TOTAL_BITCOINS_SERIES, Settings,
)
from .engine import data_loader, writers
from .engine.aggregator import MonthlyMiningRecord, aggregate_monthly
from .engine.report import energy_usage, log_summary, summarize_simulation
from .engine.simulator import SimulationRecord, simulate
from .engine.strategy import describe_strategy, load_strategy, resolve_fleet
from .engine.surplus import MonthlySurplusRecord, compute_monthly_surplus
from .schemas import StrategyConfig

logger = logging.getLogger(__name__)


def run_aggregation(settings: Settings) -> List[MonthlyMiningRecord]:
    hash_rate = data_loader.load_series(settings.input_path(HASH_RATE_FILE), HASH_RATE_SERIES)
    supply = data_loader.load_series(settings.input_path(TOTAL_BITCOINS_FILE), TOTAL_BITCOINS_SERIES)
    price = data_loader.load_series(settings.input_path(MARKET_PRICE_FILE), MARKET_PRICE_SERIES)

    records = aggregate_monthly(hash_rate, supply, price)
    writers.write_mining_monthly(records, settings.output_path(MINING_MONTHLY_FILE))
    return records


def run_surplus(settings: Settings) -> List[MonthlySurplusRecord]:
    availability = data_loader.load_availability(settings.input_path(AVAILABILITY_FILE))
    production = data_loader.load_production(settings.input_path(PRODUCTION_FILE))

    logger.info("Computing monthly surplus starting from %s", settings.start_month)
    records = compute_monthly_surplus(availability, production, settings.start_month)
    writers.write_surplus(records, settings.output_path(SURPLUS_FILE))
    return records


def run_simulation(settings: Settings, strategy: Optional[StrategyConfig] = None) -> List[SimulationRecord]:
    strategy = strategy or load_strategy(settings.strategy_path)
    catalog = data_loader.load_miner_catalog(settings.input_path(MINER_CATALOG_FILE))
    fleet = resolve_fleet(strategy, catalog)

    mining_by_month = data_loader.load_mining_monthly(settings.output_path(MINING_MONTHLY_FILE))
    surplus_records = data_loader.load_surplus(settings.output_path(SURPLUS_FILE))

    logger.info("=== MINING SIMULATION ===")
    for line in describe_strategy(strategy, fleet):
        logger.info("  - %s", line)

    records = simulate(surplus_records, mining_by_month, strategy, fleet)
    writers.write_simulation(records, list(fleet), settings.output_path(SIMULATION_FILE))
    return records


def run_report(
    settings: Settings,
    strategy: Optional[StrategyConfig] = None,
    records: Optional[List[SimulationRecord]] = None,
) -> Dict:
    """Write energy usage and the run summary; simulates first when ``records`` is None."""
    strategy = strategy or load_strategy(settings.strategy_path)
    if records is None:
        records = run_simulation(settings, strategy)

    catalog = data_loader.load_miner_catalog(settings.input_path(MINER_CATALOG_FILE))
    fleet = resolve_fleet(strategy, catalog)
    mining_by_month = data_loader.load_mining_monthly(settings.output_path(MINING_MONTHLY_FILE))
    surplus_by_month = {r.month: r for r in data_loader.load_surplus(settings.output_path(SURPLUS_FILE))}

    usage = energy_usage(records, surplus_by_month, fleet, settings.energy_days_per_month)
    writers.write_energy_usage(usage, settings.output_path(ENERGY_USAGE_FILE))

    summary = summarize_simulation(records, mining_by_month)
    writers.write_summary(summary, settings.output_path(SUMMARY_FILE))
    log_summary(summary)
    return summary


def run_pipeline(settings: Settings, strategy: Optional[StrategyConfig] = None) -> Dict:
    """Run every stage in order and return the run summary."""
    strategy = strategy or load_strategy(settings.strategy_path)
    run_aggregation(settings)
    run_surplus(settings)
    records = run_simulation(settings, strategy)
    return run_report(settings, strategy, records)
