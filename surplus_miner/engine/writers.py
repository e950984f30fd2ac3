"""Write stage outputs as fixed-precision CSV / JSON files.

Column names and precision are a contract with the dashboard, which reads the
files by header. Output is a pure function of the records: no timestamps,
sorted JSON keys, ``\\n`` line endings.
"""
import json
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .aggregator import MonthlyMiningRecord
from .report import EnergyUsageRecord
from .simulator import SimulationRecord
from .surplus import MonthlySurplusRecord

logger = logging.getLogger(__name__)

MINING_MONTHLY_COLUMNS = [
    "month", "avg_hash_rate_eh_s", "bitcoins_created", "th_s_per_bitcoin", "max_price_usd",
]
SURPLUS_COLUMNS = [
    "month", "optimal_production_twh", "actual_production_twh", "surplus_twh",
    "surplus_pj", "avg_availability_gw", "days_in_month",
]
ENERGY_USAGE_COLUMNS = [
    "month", "energy_needed_twh", "energy_consumed_twh", "unused_surplus_twh",
    "simulated_hash_rate_eh_s", "network_hash_rate_eh_s",
]


def simulation_columns(fleet_keys: Sequence[str]) -> List[str]:
    return (
        ["month"]
        + [f"{key}_count" for key in fleet_keys]
        + [
            "total_hash_rate_th_s", "network_hash_rate_th_s", "our_share_percent",
            "btc_mined_this_month", "btc_sold_this_month", "btc_balance",
            "capex_this_month_usd", "total_capex_usd",
        ]
    )


def _fmt(value: Optional[float], decimals: int) -> str:
    """Fixed-decimal string; None/NaN become an empty cell and -0.00 becomes 0.00."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    text = f"{value:.{decimals}f}"
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return text


def _write_csv(rows: List[Dict[str, str]], columns: List[str], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows, columns=columns)
    df.to_csv(path, index=False, lineterminator="\n")
    logger.info("Results saved to %s (%d rows)", path, len(df))
    return path


def write_mining_monthly(records: List[MonthlyMiningRecord], path: Path) -> Path:
    rows = [
        {
            "month": r.month,
            "avg_hash_rate_eh_s": _fmt(r.avg_hash_rate_eh, 2),
            "bitcoins_created": _fmt(r.coins_created, 2),
            "th_s_per_bitcoin": _fmt(r.hash_per_coin, 2),
            "max_price_usd": _fmt(r.max_price, 2),
        }
        for r in records
    ]
    return _write_csv(rows, MINING_MONTHLY_COLUMNS, path)


def write_surplus(records: List[MonthlySurplusRecord], path: Path) -> Path:
    rows = [
        {
            "month": r.month,
            "optimal_production_twh": _fmt(r.optimal_production_twh, 3),
            "actual_production_twh": _fmt(r.actual_production_twh, 3),
            "surplus_twh": _fmt(r.surplus_twh, 3),
            "surplus_pj": _fmt(r.surplus_pj, 2),
            "avg_availability_gw": _fmt(r.avg_availability_gw, 2),
            "days_in_month": str(r.days_in_month),
        }
        for r in records
    ]
    return _write_csv(rows, SURPLUS_COLUMNS, path)


def write_simulation(records: List[SimulationRecord], fleet_keys: Sequence[str], path: Path) -> Path:
    rows = []
    for r in records:
        row = {"month": r.month}
        for key in fleet_keys:
            row[f"{key}_count"] = str(r.fleet_counts.get(key, 0))
        row.update({
            "total_hash_rate_th_s": _fmt(r.total_hash_rate_th_s, 2),
            "network_hash_rate_th_s": _fmt(r.network_hash_rate_th_s, 2),
            "our_share_percent": _fmt(r.our_share_percent, 2),
            "btc_mined_this_month": _fmt(r.btc_mined_this_month, 8),
            "btc_sold_this_month": _fmt(r.btc_sold_this_month, 8),
            "btc_balance": _fmt(r.btc_balance, 8),
            "capex_this_month_usd": _fmt(r.capex_this_month_usd, 2),
            "total_capex_usd": _fmt(r.total_capex_usd, 2),
        })
        rows.append(row)
    return _write_csv(rows, simulation_columns(fleet_keys), path)


def write_energy_usage(records: List[EnergyUsageRecord], path: Path) -> Path:
    rows = [
        {
            "month": r.month,
            "energy_needed_twh": _fmt(r.energy_needed_twh, 3),
            "energy_consumed_twh": _fmt(r.energy_consumed_twh, 3),
            "unused_surplus_twh": _fmt(r.unused_surplus_twh, 3),
            "simulated_hash_rate_eh_s": _fmt(r.simulated_hash_rate_eh_s, 2),
            "network_hash_rate_eh_s": _fmt(r.network_hash_rate_eh_s, 2),
        }
        for r in records
    ]
    return _write_csv(rows, ENERGY_USAGE_COLUMNS, path)


def write_summary(summary: Dict, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Summary saved to %s", path)
    return path
