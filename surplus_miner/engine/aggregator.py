"""Monthly mining-economics aggregation.

Three raw series are reduced to one row per calendar month:
  - network hash rate (TH/s): arithmetic mean of the month's samples
  - market price (USD): maximum of the month's samples (best realizable sale price)
  - cumulative coin supply: value at the month's latest timestamp minus the
    value at its earliest timestamp, clamped at 0

Only months present in both the hash-rate and supply series are emitted;
price is attached when available.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from .months import month_key

logger = logging.getLogger(__name__)

TH_PER_EH = 1e6


@dataclass(frozen=True)
class MonthlyMiningRecord:
    month: str
    avg_hash_rate_th: float
    coins_created: float
    hash_per_coin: Optional[float]  # TH/s per coin created; None when no coins were created
    max_price: Optional[float]

    @property
    def avg_hash_rate_eh(self) -> float:
        return self.avg_hash_rate_th / TH_PER_EH


def _with_months(samples: pd.DataFrame) -> pd.DataFrame:
    frame = samples[["timestamp", "value"]].reset_index(drop=True).copy()
    frame["month"] = [month_key(ts) for ts in frame["timestamp"]]
    return frame


def monthly_mean(samples: pd.DataFrame) -> pd.Series:
    """Average of all samples per month (hash rate)."""
    if samples.empty:
        return pd.Series(dtype=float)
    return _with_months(samples).groupby("month")["value"].mean()


def monthly_max(samples: pd.DataFrame) -> pd.Series:
    """Largest sample per month (price)."""
    if samples.empty:
        return pd.Series(dtype=float)
    return _with_months(samples).groupby("month")["value"].max()


def monthly_supply_bounds(samples: pd.DataFrame) -> pd.DataFrame:
    """
    Start- and end-of-month totals of a cumulative series.
    Returns DataFrame indexed by month with columns: ['start_total', 'end_total'].

    The bounds are the samples with the earliest and latest timestamp in the
    month, whatever order they appear in the input.
    """
    if samples.empty:
        return pd.DataFrame(columns=["start_total", "end_total"], dtype=float)

    frame = _with_months(samples)
    by_month = frame.groupby("month")["timestamp"]
    start = frame.loc[by_month.idxmin()].set_index("month")["value"]
    end = frame.loc[by_month.idxmax()].set_index("month")["value"]
    return pd.DataFrame({"start_total": start, "end_total": end})


def monthly_coins_created(samples: pd.DataFrame) -> pd.Series:
    """Coins issued per month; negative deltas from corrected source data clamp to 0."""
    bounds = monthly_supply_bounds(samples)
    return pd.Series(
        np.maximum(bounds["end_total"] - bounds["start_total"], 0.0),
        index=bounds.index,
        dtype=float,
    )


def aggregate_monthly(
    hash_rate: pd.DataFrame,
    supply: pd.DataFrame,
    price: pd.DataFrame,
) -> List[MonthlyMiningRecord]:
    """
    Join the three monthly reductions into MonthlyMiningRecords.

    Args:
        hash_rate: samples ['timestamp', 'value'] in TH/s.
        supply: cumulative coin supply samples.
        price: market price samples (USD).

    Returns:
        Records for the intersection of hash-rate and supply months, ascending.
    """
    hash_rates = monthly_mean(hash_rate)
    logger.info("Generated %d monthly hash rate records", len(hash_rates))
    coins = monthly_coins_created(supply)
    logger.info("Generated %d monthly coin supply records", len(coins))
    max_prices = monthly_max(price)
    logger.info("Generated %d monthly max price records", len(max_prices))

    hash_months = set(hash_rates.index)
    supply_months = set(coins.index)
    common = sorted(hash_months & supply_months)
    for month in sorted(hash_months ^ supply_months):
        side = "supply" if month in hash_months else "hash rate"
        logger.warning("No %s data for %s, skipping...", side, month)
    logger.info("Found %d months with both datasets", len(common))

    records: List[MonthlyMiningRecord] = []
    for month in common:
        avg_hash_rate = float(hash_rates[month])
        coins_created = float(coins[month])
        max_price = float(max_prices[month]) if month in max_prices.index else None
        records.append(MonthlyMiningRecord(
            month=month,
            avg_hash_rate_th=avg_hash_rate,
            coins_created=coins_created,
            hash_per_coin=avg_hash_rate / coins_created if coins_created > 0 else None,
            max_price=max_price,
        ))

    if records:
        logger.info("Date range: %s to %s", records[0].month, records[-1].month)
    return records
