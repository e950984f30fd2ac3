"""Runtime settings and file layout.

Settings come from environment variables, optionally loaded from a ``.env``
file next to this package. CLI flags override them per run.
"""
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .engine.months import parse_month
from .engine.surplus import DEFAULT_START_MONTH

load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))

# Input files
HASH_RATE_FILE = "hash-rate.json"
TOTAL_BITCOINS_FILE = "total-bitcoins.json"
MARKET_PRICE_FILE = "bitcoin-market-price.json"
AVAILABILITY_FILE = "nuclear-availability.csv"
PRODUCTION_FILE = "nuclear-production.csv"
MINER_CATALOG_FILE = "bitcoin-miners-strat.csv"

# Series names inside the JSON inputs
HASH_RATE_SERIES = "hash-rate"
TOTAL_BITCOINS_SERIES = "total-bitcoins"
MARKET_PRICE_SERIES = "market-price"

# Output files
MINING_MONTHLY_FILE = "bitcoin-mining-monthly.csv"
SURPLUS_FILE = "nuclear-surplus.csv"
SIMULATION_FILE = "mining-simulation.csv"
ENERGY_USAGE_FILE = "energy-usage.csv"
SUMMARY_FILE = "mining-simulation-summary.json"


class Settings(BaseModel):
    data_dir: Path = Path("data")
    output_dir: Optional[Path] = None  # defaults to data_dir
    start_month: str = DEFAULT_START_MONTH
    strategy_path: Optional[Path] = None
    energy_days_per_month: Optional[float] = None
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000"]

    @property
    def outputs(self) -> Path:
        return self.output_dir or self.data_dir

    def input_path(self, name: str) -> Path:
        return self.data_dir / name

    def output_path(self, name: str) -> Path:
        return self.outputs / name


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def get_cors_origins() -> List[str]:
    """Origins from CORS_ORIGINS (comma separated); empty when unset."""
    origins = _optional("CORS_ORIGINS") or ""
    return [o.strip() for o in origins.split(",") if o.strip()]


def get_settings(**overrides) -> Settings:
    """Build Settings from the environment; non-None keyword overrides win."""
    values = {
        "data_dir": os.getenv("DATA_DIR", "data"),
        "output_dir": _optional("OUTPUT_DIR"),
        "start_month": os.getenv("SURPLUS_START_MONTH", DEFAULT_START_MONTH),
        "strategy_path": _optional("STRATEGY_PATH"),
        "energy_days_per_month": _optional("ENERGY_DAYS_PER_MONTH"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
    }
    origins = get_cors_origins()
    if origins:
        values["cors_origins"] = origins

    values.update({k: v for k, v in overrides.items() if v is not None})
    settings = Settings(**values)
    parse_month(settings.start_month)
    return settings
