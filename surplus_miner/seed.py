"""Reference miner catalog: the ASIC models the default strategy buys, plus neighbours."""
import logging
import sys
from pathlib import Path

import pandas as pd

from .engine.data_loader import MINER_CATALOG_COLUMNS

logger = logging.getLogger(__name__)

REFERENCE_MINERS = [
    {
        "model": "Antminer S19",
        "release_year": 2020,
        "hash_rate_th": 95.0,
        "efficiency_j_th": 34.5,
        "consumption_watts": 3250.0,
        "approx_cost_usd": 2000.0,
    },
    {
        "model": "Antminer S19 Pro",
        "release_year": 2020,
        "hash_rate_th": 110.0,
        "efficiency_j_th": 29.5,
        "consumption_watts": 3250.0,
        "approx_cost_usd": 2400.0,
    },
    {
        "model": "Antminer S19 XP",
        "release_year": 2022,
        "hash_rate_th": 140.0,
        "efficiency_j_th": 21.5,
        "consumption_watts": 3010.0,
        "approx_cost_usd": 4500.0,
    },
    {
        "model": "Antminer S21",
        "release_year": 2023,
        "hash_rate_th": 200.0,
        "efficiency_j_th": 17.5,
        "consumption_watts": 3500.0,
        "approx_cost_usd": 5800.0,
    },
    {
        "model": "Antminer S21 XP",
        "release_year": 2024,
        "hash_rate_th": 270.0,
        "efficiency_j_th": 13.5,
        "consumption_watts": 3645.0,
        "approx_cost_usd": 7200.0,
    },
]


def seed_miner_catalog(path: Path, force: bool = False) -> bool:
    """Write the reference catalog to ``path``. Returns False if it already exists and ``force`` is off."""
    path = Path(path)
    if path.exists() and not force:
        logger.info("Miner catalog %s already exists. Skipping.", path)
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(REFERENCE_MINERS, columns=MINER_CATALOG_COLUMNS).to_csv(path, index=False, lineterminator="\n")
    logger.info("Miner catalog written to %s: %s", path, ", ".join(m["model"] for m in REFERENCE_MINERS))
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("data") / "bitcoin-miners-strat.csv"
    seed_miner_catalog(target, force="--force" in sys.argv)
