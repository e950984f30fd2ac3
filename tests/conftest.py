import calendar
import json
from datetime import datetime, timezone

import pytest

from surplus_miner.config import get_settings
from surplus_miner.schemas import MinerModel, PhaseDefinition, PhaseKind, StrategyConfig, FleetSlot
from surplus_miner.seed import seed_miner_catalog

MONTHS = [(2024, 1), (2024, 2), (2024, 3), (2024, 4)]


def ms(year, month, day, hour=0):
    return int(datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp() * 1000)


def _write_series(path, name, entries):
    path.write_text(json.dumps({name: entries}), encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path):
    """Four months (2024-01..2024-04) of consistent raw inputs plus the reference catalog."""
    hash_rate, supply, price = [], [], []
    total = 19_600_000.0
    for i, (year, month) in enumerate(MONTHS):
        last_day = calendar.monthrange(year, month)[1]
        for day in (1, 10, 20, last_day):
            hash_rate.append({"x": ms(year, month, day), "y": 500e6 + i * 10e6})
        supply.append({"x": ms(year, month, 1), "y": total})
        total += 13_500.0
        supply.append({"x": ms(year, month, last_day), "y": total})
        price.extend([
            {"x": ms(year, month, 3), "y": 40_000.0 + i * 1000},
            {"x": ms(year, month, 15), "y": 42_000.0 + i * 1000},
        ])

    _write_series(tmp_path / "hash-rate.json", "hash-rate", hash_rate)
    _write_series(tmp_path / "total-bitcoins.json", "total-bitcoins", supply)
    _write_series(tmp_path / "bitcoin-market-price.json", "market-price", price)

    availability = ["date,availability"]
    production = ["date,production"]
    for year, month in MONTHS:
        days = calendar.monthrange(year, month)[1]
        for day in range(1, days + 1):
            availability.append(f"{year}/{month:02d}/{day:02d},45")
        production.append(f"{year}-{month:02d},30")
    (tmp_path / "nuclear-availability.csv").write_text("\n".join(availability) + "\n", encoding="utf-8")
    (tmp_path / "nuclear-production.csv").write_text("\n".join(production) + "\n", encoding="utf-8")

    seed_miner_catalog(tmp_path / "bitcoin-miners-strat.csv")
    return tmp_path


@pytest.fixture
def strategy():
    return StrategyConfig(
        fleet=[FleetSlot(key="s19_pro", model="Antminer S19 Pro"), FleetSlot(key="s21", model="Antminer S21")],
        phases=[
            PhaseDefinition(kind=PhaseKind.SEED, start="2024-01", model="s19_pro", budget_usd=24_000_000),
            PhaseDefinition(kind=PhaseKind.REINVEST, start="2024-02", end="2024-03", model="s19_pro",
                            reinvest_ratio=0.5),
            PhaseDefinition(kind=PhaseKind.ACCUMULATE, start="2024-04"),
        ],
    )


@pytest.fixture
def settings(data_dir):
    return get_settings(data_dir=data_dir, start_month="2024-01")


@pytest.fixture
def toy_fleet():
    return {
        "a": MinerModel(name="Model A", hash_rate_th=100.0, power_watts=1000.0, unit_cost_usd=1000.0),
        "b": MinerModel(name="Model B", hash_rate_th=200.0, power_watts=1000.0, unit_cost_usd=2000.0),
    }
