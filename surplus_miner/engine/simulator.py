"""Energy-constrained mining fleet simulation.

State (fleet counts, coin balance, cumulative capex) is threaded through the
months in order by a pure step function. Per month:

  1. Upfront buy (seed phase): floor(budget / unit cost) units of the phase model
  2. Energy constraint: the fleet draws rated power for the whole month; the
     available surplus energy caps utilization at available / required (<= 1)
  3. Network share: effective hash rate / network hash rate
  4. Coins mined: coins created network-wide * share
  5. Reinvestment (reinvest phase): sell ratio * mined at the month's max price
     if the proceeds buy at least one whole unit of the phase model
  6. Balance += mined - sold

Month N depends on month N-1's ending state, so months are never processed
out of order.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..schemas import MinerModel, PhaseDefinition, PhaseKind, StrategyConfig
from .aggregator import MonthlyMiningRecord
from .strategy import phase_for_month, phase_kind
from .surplus import MonthlySurplusRecord

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
JOULES_PER_PJ = 1e15


@dataclass(frozen=True)
class SimulationState:
    fleet_counts: Dict[str, int]
    coin_balance: float = 0.0
    cumulative_capital_spent: float = 0.0

    @classmethod
    def initial(cls, fleet_keys: Iterable[str]) -> "SimulationState":
        return cls(fleet_counts={key: 0 for key in fleet_keys})


@dataclass(frozen=True)
class MonthInputs:
    month: str
    surplus_pj: float
    days_in_month: int
    network_hash_rate_th: float
    coins_created: float
    max_price: Optional[float]


@dataclass(frozen=True)
class SimulationRecord:
    month: str
    fleet_counts: Dict[str, int]
    total_hash_rate_th_s: float  # effective (energy-constrained)
    network_hash_rate_th_s: float
    our_share_percent: float
    btc_mined_this_month: float
    btc_sold_this_month: float
    btc_balance: float
    capex_this_month_usd: float
    total_capex_usd: float
    rated_hash_rate_th_s: float = 0.0
    utilization_ratio: float = 0.0
    phase: str = PhaseKind.DORMANT.value


def month_inputs(surplus: MonthlySurplusRecord, mining: MonthlyMiningRecord) -> MonthInputs:
    return MonthInputs(
        month=surplus.month,
        surplus_pj=surplus.surplus_pj,
        days_in_month=surplus.days_in_month,
        network_hash_rate_th=mining.avg_hash_rate_th,
        coins_created=mining.coins_created,
        max_price=mining.max_price,
    )


def utilization_ratio(available_joules: float, required_joules: float) -> float:
    """Fraction of the fleet that the available energy can run, in [0, 1].

    An empty fleet (nothing required) runs at 0. A negative surplus runs at 0.
    """
    if required_joules <= 0:
        return 0.0
    return min(1.0, max(0.0, available_joules / required_joules))


def _buy(counts: Dict[str, int], key: str, miner: MinerModel, budget_usd: float) -> Tuple[int, float]:
    units = math.floor(budget_usd / miner.unit_cost_usd)
    counts[key] += units
    return units, units * miner.unit_cost_usd


def step(
    state: SimulationState,
    inputs: MonthInputs,
    phase: Optional[PhaseDefinition],
    fleet: Dict[str, MinerModel],
) -> Tuple[SimulationState, SimulationRecord]:
    """Advance the simulation by one month. ``state`` is not modified."""
    kind = phase_kind(phase)
    counts = dict(state.fleet_counts)
    capex_this_month = 0.0

    # 1) UPFRONT BUY
    if kind == PhaseKind.SEED:
        miner = fleet[phase.model]
        units, capex_this_month = _buy(counts, phase.model, miner, phase.budget_usd)
        logger.info(
            "%s: Initial %s investment - bought %s miners ($%.2fM)",
            inputs.month, miner.name, f"{units:,}", capex_this_month / 1e6,
        )

    # 2) ENERGY-CONSTRAINED OUTPUT
    rated_hash_rate = sum(counts[key] * fleet[key].hash_rate_th for key in counts)
    rated_power_w = sum(counts[key] * fleet[key].power_watts for key in counts)
    required_joules = rated_power_w * inputs.days_in_month * SECONDS_PER_DAY
    available_joules = inputs.surplus_pj * JOULES_PER_PJ
    ratio = utilization_ratio(available_joules, required_joules)
    effective_hash_rate = rated_hash_rate * ratio

    # 3) NETWORK SHARE & OUTPUT
    network = inputs.network_hash_rate_th
    share_percent = effective_hash_rate / network * 100.0 if network > 0 else 0.0
    mined = inputs.coins_created * (share_percent / 100.0)

    # 4) POST-MINING REINVESTMENT
    sold = 0.0
    if kind == PhaseKind.REINVEST:
        miner = fleet[phase.model]
        to_sell = mined * phase.reinvest_ratio
        price = inputs.max_price
        if to_sell > 0 and price is not None and price > 0:
            proceeds = to_sell * price
            units = math.floor(proceeds / miner.unit_cost_usd)
            if units > 0:
                sold = to_sell
                counts[phase.model] += units
                capex_this_month = units * miner.unit_cost_usd
                logger.info(
                    "%s: Sold %.0f%% of mined (%.2f BTC, $%.2fM) -> %s more %s",
                    inputs.month, phase.reinvest_ratio * 100, sold, proceeds / 1e6, f"{units:,}", miner.name,
                )
        elif to_sell > 0:
            logger.warning("%s: No usable price, skipping reinvestment", inputs.month)

    # 5) BALANCE UPDATE
    balance = state.coin_balance + (mined - sold)
    cumulative = state.cumulative_capital_spent + capex_this_month

    new_state = SimulationState(
        fleet_counts=counts,
        coin_balance=balance,
        cumulative_capital_spent=cumulative,
    )
    record = SimulationRecord(
        month=inputs.month,
        fleet_counts=dict(counts),
        total_hash_rate_th_s=effective_hash_rate,
        network_hash_rate_th_s=network,
        our_share_percent=share_percent,
        btc_mined_this_month=mined,
        btc_sold_this_month=sold,
        btc_balance=balance,
        capex_this_month_usd=capex_this_month,
        total_capex_usd=cumulative,
        rated_hash_rate_th_s=rated_hash_rate,
        utilization_ratio=ratio,
        phase=kind.value,
    )
    return new_state, record


def simulate(
    surplus_records: List[MonthlySurplusRecord],
    mining_by_month: Dict[str, MonthlyMiningRecord],
    strategy: StrategyConfig,
    fleet: Dict[str, MinerModel],
) -> List[SimulationRecord]:
    """
    Run the strategy over every surplus month, in ascending month order.

    A month without mining-economics data is skipped: no row, no state change.
    """
    state = SimulationState.initial(fleet.keys())
    results: List[SimulationRecord] = []

    for surplus in sorted(surplus_records, key=lambda r: r.month):
        mining = mining_by_month.get(surplus.month)
        if mining is None:
            logger.warning("No bitcoin data for %s, skipping...", surplus.month)
            continue
        phase = phase_for_month(strategy.phases, surplus.month)
        state, record = step(state, month_inputs(surplus, mining), phase, fleet)
        results.append(record)

    logger.info("Simulated %d months", len(results))
    return results
