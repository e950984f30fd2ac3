"""Monthly energy surplus: grid-available capacity that was never produced."""
import logging
from dataclasses import dataclass
from typing import Dict, List

import pandas as pd

from .months import month_key

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0
GWH_PER_TWH = 1000.0
PJ_PER_TWH = 3.6

DEFAULT_START_MONTH = "2020-06"  # month after the third halving


@dataclass(frozen=True)
class MonthlySurplusRecord:
    month: str
    optimal_production_twh: float
    actual_production_twh: float
    surplus_twh: float
    surplus_pj: float
    avg_availability_gw: float
    days_in_month: int  # observed daily samples, not calendar days


def group_availability(availability: pd.DataFrame, start_month: str) -> pd.DataFrame:
    """
    Sum daily availability per month, ignoring months before ``start_month``.
    Returns DataFrame indexed by month with columns: ['total_gw', 'days'].
    """
    frame = availability[["date", "availability_gw"]].copy()
    months = []
    for date in frame["date"]:
        try:
            months.append(month_key(date))
        except ValueError:
            logger.warning("Unparseable availability date %r, skipping...", date)
            months.append(None)
    frame["month"] = months
    frame = frame[frame["month"].notna()]
    frame = frame[frame["month"] >= start_month]

    grouped = frame.groupby("month")["availability_gw"].agg(["sum", "count"])
    grouped.columns = ["total_gw", "days"]
    return grouped.sort_index()


def compute_monthly_surplus(
    availability: pd.DataFrame,
    production: Dict[str, float],
    start_month: str = DEFAULT_START_MONTH,
) -> List[MonthlySurplusRecord]:
    """
    Compute per-month optimal production, surplus and average availability.

    For each month m >= start_month with production data:
    - optimal_twh = sum(daily availability GW) * 24 / 1000
    - avg_availability_gw = sum(daily GW) / observed days
    - surplus_twh = optimal_twh - actual_twh
    - surplus_pj = surplus_twh * 3.6

    Values keep full precision here; rounding happens when the CSV is written.
    """
    monthly = group_availability(availability, start_month)

    results: List[MonthlySurplusRecord] = []
    for month, row in monthly.iterrows():
        actual = production.get(month)
        if actual is None:
            logger.warning("No production data for %s, skipping...", month)
            continue

        total_gw = float(row["total_gw"])
        days = int(row["days"])
        optimal_twh = total_gw * HOURS_PER_DAY / GWH_PER_TWH
        surplus_twh = optimal_twh - actual

        results.append(MonthlySurplusRecord(
            month=month,
            optimal_production_twh=optimal_twh,
            actual_production_twh=actual,
            surplus_twh=surplus_twh,
            surplus_pj=surplus_twh * PJ_PER_TWH,
            avg_availability_gw=total_gw / days,
            days_in_month=days,
        ))

    logger.info("Computed surplus for %d months starting %s", len(results), start_month)
    return results
