"""Read pipeline inputs and previously written stage outputs from disk.

Input files:
  - hash-rate / total-bitcoins / market-price: JSON documents keyed by series
    name, each an array of ``{"x": epoch_ms, "y": value}`` samples
  - nuclear availability: daily CSV ``date,availability`` (GW)
  - nuclear production: monthly CSV ``date,production`` (TWh)
  - miner catalog: CSV ``model,release_year,hash_rate_th,efficiency_j_th,consumption_watts,approx_cost_usd``

A missing or undecodable file is fatal (DataFileError). A row whose numeric
field does not parse is dropped with a warning.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd
from pydantic import ValidationError

from ..errors import DataFileError
from ..schemas import MinerModel
from .aggregator import TH_PER_EH, MonthlyMiningRecord
from .months import month_key
from .surplus import MonthlySurplusRecord

logger = logging.getLogger(__name__)

MINER_CATALOG_COLUMNS = [
    "model", "release_year", "hash_rate_th", "efficiency_j_th", "consumption_watts", "approx_cost_usd",
]


# ── File helpers ─────────────────────────────────────────

def _read_csv(path: Path, required: Iterable[str]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise DataFileError(f"File not found: {path}")
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise DataFileError(f"Failed to read {path}: {e}") from e
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()

    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DataFileError(f"{path.name} is missing required column(s): {', '.join(missing)}")
    return df


def _read_json(path: Path) -> dict:
    path = Path(path)
    if not path.exists():
        raise DataFileError(f"File not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DataFileError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise DataFileError(f"{path.name} must contain a JSON object keyed by series name")
    return data


def _numeric(df: pd.DataFrame, columns: List[str], source: str) -> pd.DataFrame:
    """Coerce ``columns`` to floats, dropping (and reporting) rows that fail to parse."""
    df = df.copy()
    for col in columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    bad = df[columns].isna().any(axis=1)
    if bad.any():
        logger.warning("Discarded %d row(s) with malformed numeric values in %s", int(bad.sum()), source)
    return df.loc[~bad].reset_index(drop=True)


# ── Raw inputs ───────────────────────────────────────────

def load_series(path: Path, series: str) -> pd.DataFrame:
    """
    Load one ``{x, y}`` time series.
    Returns DataFrame with columns: ['timestamp', 'value'] (epoch ms, float), in file order.
    """
    data = _read_json(path)
    if series not in data:
        raise DataFileError(f"{Path(path).name} has no '{series}' series")
    entries = data[series]
    if not isinstance(entries, list):
        raise DataFileError(f"'{series}' in {Path(path).name} must be an array of samples")

    rows = [entry for entry in entries if isinstance(entry, dict)]
    if len(rows) < len(entries):
        logger.warning("Discarded %d non-object sample(s) in %s", len(entries) - len(rows), series)

    df = pd.DataFrame(rows, columns=["x", "y"]).astype(object)
    df = _numeric(df, ["x", "y"], series)
    valid = df["x"].map(_is_timestamp).astype(bool)
    if not valid.all():
        logger.warning("Discarded %d row(s) with malformed timestamps in %s", int((~valid).sum()), series)
        df = df.loc[valid].reset_index(drop=True)
    df.columns = ["timestamp", "value"]
    logger.info("Loaded %d %s entries", len(df), series)
    return df


def load_availability(path: Path) -> pd.DataFrame:
    """
    Load daily plant availability.
    Returns DataFrame with columns: ['date', 'availability_gw'], one row per date.
    Dates are normalized to YYYY-MM-DD; a repeated date keeps its last reading.
    """
    df = _read_csv(path, ["date", "availability"])
    df = df[["date", "availability"]]
    df = df[df["date"].str.strip() != ""]
    df = _numeric(df, ["availability"], Path(path).name)
    df["date"] = df["date"].str.strip().str.replace("/", "-", regex=False)
    df = (
        df.drop_duplicates(subset=["date"], keep="last")
        .rename(columns={"availability": "availability_gw"})
        .reset_index(drop=True)
    )
    logger.info("Loaded %d daily availability records", len(df))
    return df


def load_production(path: Path) -> Dict[str, float]:
    """Load monthly production as ``{month: production_twh}``."""
    df = _read_csv(path, ["date", "production"])
    df = _numeric(df[["date", "production"]], ["production"], Path(path).name)

    production: Dict[str, float] = {}
    for date, value in zip(df["date"], df["production"]):
        try:
            month = month_key(date)
        except ValueError:
            logger.warning("Discarded production row with unparseable date %r", date)
            continue
        production[month] = float(value)
    logger.info("Loaded %d monthly production records", len(production))
    return production


def load_miner_catalog(path: Path) -> Dict[str, MinerModel]:
    """Load the miner catalog keyed by model name."""
    df = _read_csv(path, ["model", "hash_rate_th", "consumption_watts", "approx_cost_usd"])
    catalog: Dict[str, MinerModel] = {}
    for row in df.to_dict(orient="records"):
        try:
            miner = MinerModel(
                name=row["model"].strip(),
                hash_rate_th=row["hash_rate_th"],
                power_watts=row["consumption_watts"],
                unit_cost_usd=row["approx_cost_usd"],
                release_year=row.get("release_year") or None,
                efficiency_j_th=row.get("efficiency_j_th") or None,
            )
        except ValidationError as e:
            logger.warning("Discarded miner row %r: %d invalid field(s)", row.get("model"), e.error_count())
            continue
        catalog[miner.name] = miner
    logger.info("Loaded %d miner models", len(catalog))
    return catalog


# ── Stage outputs ────────────────────────────────────────

def load_mining_monthly(path: Path) -> Dict[str, MonthlyMiningRecord]:
    """Read the aggregator's CSV back as ``{month: MonthlyMiningRecord}``."""
    df = _read_csv(path, ["month", "avg_hash_rate_eh_s", "bitcoins_created", "th_s_per_bitcoin", "max_price_usd"])
    df = _numeric(df, ["avg_hash_rate_eh_s", "bitcoins_created"], Path(path).name)

    records: Dict[str, MonthlyMiningRecord] = {}
    for row in df.to_dict(orient="records"):
        records[row["month"]] = MonthlyMiningRecord(
            month=row["month"],
            avg_hash_rate_th=float(row["avg_hash_rate_eh_s"]) * TH_PER_EH,
            coins_created=float(row["bitcoins_created"]),
            hash_per_coin=_optional_float(row["th_s_per_bitcoin"]),
            max_price=_optional_float(row["max_price_usd"]),
        )
    logger.info("Loaded %d monthly bitcoin records", len(records))
    return records


def load_surplus(path: Path) -> List[MonthlySurplusRecord]:
    """Read the surplus calculator's CSV back, in file order."""
    numeric = [
        "optimal_production_twh", "actual_production_twh", "surplus_twh",
        "surplus_pj", "avg_availability_gw", "days_in_month",
    ]
    df = _read_csv(path, ["month"] + numeric)
    df = _numeric(df, numeric, Path(path).name)

    records = [
        MonthlySurplusRecord(
            month=row["month"],
            optimal_production_twh=row["optimal_production_twh"],
            actual_production_twh=row["actual_production_twh"],
            surplus_twh=row["surplus_twh"],
            surplus_pj=row["surplus_pj"],
            avg_availability_gw=row["avg_availability_gw"],
            days_in_month=int(row["days_in_month"]),
        )
        for row in df.to_dict(orient="records")
    ]
    logger.info("Loaded %d monthly surplus records", len(records))
    return records


def _is_timestamp(value) -> bool:
    """True if ``value`` is epoch millis that maps to a calendar month (finite, in datetime range)."""
    try:
        month_key(value)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def _optional_float(value) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(value)
    except ValueError:
        return None
