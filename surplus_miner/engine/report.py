"""Post-simulation reporting: per-month energy usage and a whole-run summary."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..schemas import MinerModel
from .aggregator import TH_PER_EH, MonthlyMiningRecord
from .simulator import SimulationRecord
from .surplus import MonthlySurplusRecord

logger = logging.getLogger(__name__)

WH_PER_TWH = 1e12


@dataclass(frozen=True)
class EnergyUsageRecord:
    month: str
    energy_needed_twh: float
    energy_consumed_twh: float
    unused_surplus_twh: float
    simulated_hash_rate_eh_s: float
    network_hash_rate_eh_s: float


def energy_usage(
    records: List[SimulationRecord],
    surplus_by_month: Dict[str, MonthlySurplusRecord],
    fleet: Dict[str, MinerModel],
    days_per_month: Optional[float] = None,
) -> List[EnergyUsageRecord]:
    """
    Split each month's surplus into energy the fleet consumed and energy left unused.

    For each simulated month:
    - energy_needed_twh = sum(count * watts) * 24 * days / 1e12
    - energy_consumed_twh = min(needed, surplus_twh), floored at 0
    - unused_surplus_twh = max(0, surplus_twh - needed)

    ``days`` is the surplus record's observed day count unless ``days_per_month``
    forces a flat value.
    """
    usage: List[EnergyUsageRecord] = []
    for record in records:
        surplus = surplus_by_month.get(record.month)
        surplus_twh = surplus.surplus_twh if surplus is not None else 0.0
        if days_per_month is not None:
            days = days_per_month
        else:
            days = surplus.days_in_month if surplus is not None else 0

        fleet_watts = sum(count * fleet[key].power_watts for key, count in record.fleet_counts.items())
        needed_twh = fleet_watts * 24.0 * days / WH_PER_TWH

        usage.append(EnergyUsageRecord(
            month=record.month,
            energy_needed_twh=needed_twh,
            energy_consumed_twh=max(0.0, min(needed_twh, surplus_twh)),
            unused_surplus_twh=max(0.0, surplus_twh - needed_twh),
            simulated_hash_rate_eh_s=record.total_hash_rate_th_s / TH_PER_EH,
            network_hash_rate_eh_s=record.network_hash_rate_th_s / TH_PER_EH,
        ))
    return usage


def summarize_simulation(
    records: List[SimulationRecord],
    mining_by_month: Dict[str, MonthlyMiningRecord],
) -> Dict:
    """
    Whole-run totals and valuation.

    Returns:
        {
            months_simulated, first_month, last_month, total_capex_usd,
            total_btc_mined, total_btc_sold, final_btc_balance, final_fleet,
            last_max_price_usd, final_btc_value_usd, roi_percent,
            retained_btc_value_usd
        }
    """
    total_mined = sum(r.btc_mined_this_month for r in records)
    total_sold = sum(r.btc_sold_this_month for r in records)

    # Value of the coins kept each month at that month's best price
    retained_value = 0.0
    for r in records:
        mining = mining_by_month.get(r.month)
        price = mining.max_price if mining is not None and mining.max_price is not None else 0.0
        retained_value += (r.btc_mined_this_month - r.btc_sold_this_month) * price

    if not records:
        return {
            "months_simulated": 0,
            "first_month": None,
            "last_month": None,
            "total_capex_usd": 0.0,
            "total_btc_mined": 0.0,
            "total_btc_sold": 0.0,
            "final_btc_balance": 0.0,
            "final_fleet": {},
            "last_max_price_usd": None,
            "final_btc_value_usd": 0.0,
            "roi_percent": None,
            "retained_btc_value_usd": 0.0,
        }

    last = records[-1]
    last_mining = mining_by_month.get(last.month)
    last_price = last_mining.max_price if last_mining is not None else None
    final_value = last.btc_balance * (last_price or 0.0)
    total_capex = last.total_capex_usd
    roi = (final_value - total_capex) / total_capex * 100.0 if total_capex > 0 else None

    return {
        "months_simulated": len(records),
        "first_month": records[0].month,
        "last_month": last.month,
        "total_capex_usd": round(total_capex, 2),
        "total_btc_mined": round(total_mined, 8),
        "total_btc_sold": round(total_sold, 8),
        "final_btc_balance": round(last.btc_balance, 8),
        "final_fleet": dict(last.fleet_counts),
        "last_max_price_usd": round(last_price, 2) if last_price is not None else None,
        "final_btc_value_usd": round(final_value, 2),
        "roi_percent": round(roi, 2) if roi is not None else None,
        "retained_btc_value_usd": round(retained_value, 2),
    }


def log_summary(summary: Dict) -> None:
    logger.info("=== FINAL SUMMARY ===")
    logger.info("Months simulated: %d (%s to %s)",
                summary["months_simulated"], summary["first_month"], summary["last_month"])
    logger.info("Total CAPEX invested: $%.2fM", summary["total_capex_usd"] / 1e6)
    logger.info("Total BTC mined: %.4f BTC", summary["total_btc_mined"])
    logger.info("Total BTC sold (for reinvestment): %.4f BTC", summary["total_btc_sold"])
    logger.info("Final BTC balance: %.4f BTC", summary["final_btc_balance"])
    logger.info("Final fleet: %s", ", ".join(f"{count:,} {key}" for key, count in summary["final_fleet"].items()))
    if summary["last_max_price_usd"] is not None:
        logger.info("Final BTC value (at $%.0f): $%.2fM",
                    summary["last_max_price_usd"], summary["final_btc_value_usd"] / 1e6)
    if summary["roi_percent"] is not None:
        logger.info("ROI: %.1f%%", summary["roi_percent"])
