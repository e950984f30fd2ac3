"""Pydantic schemas: miner catalog, strategy configuration and API payloads."""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .engine.months import parse_month


# ──────────────────────────────────────────────────────────
# Miner catalog
# ──────────────────────────────────────────────────────────
class MinerModel(BaseModel):
    """Static hardware spec for one ASIC model."""
    model_config = ConfigDict(frozen=True)

    name: str
    hash_rate_th: float = Field(gt=0)
    power_watts: float = Field(ge=0)
    unit_cost_usd: float = Field(gt=0)
    release_year: Optional[int] = None
    efficiency_j_th: Optional[float] = None  # informational; power_watts / hash_rate_th


# ──────────────────────────────────────────────────────────
# Strategy
# ──────────────────────────────────────────────────────────
class PhaseKind(str, Enum):
    SEED = "seed"
    REINVEST = "reinvest"
    DORMANT = "dormant"
    ACCUMULATE = "accumulate"


class FleetSlot(BaseModel):
    key: str = Field(pattern=r"^[a-z0-9_]+$")  # output column is "<key>_count"
    model: str  # catalog model name


class PhaseDefinition(BaseModel):
    kind: PhaseKind
    start: str  # YYYY-MM, inclusive
    end: Optional[str] = None  # YYYY-MM, inclusive; None = open-ended (seed: same as start)
    model: Optional[str] = None  # fleet slot key
    budget_usd: Optional[float] = Field(default=None, gt=0)
    reinvest_ratio: Optional[float] = Field(default=None, gt=0, le=1)

    @model_validator(mode="after")
    def _check_kind_fields(self):
        parse_month(self.start)
        if self.kind == PhaseKind.SEED and self.end is None:
            self.end = self.start
        if self.end is not None:
            parse_month(self.end)
            if self.end < self.start:
                raise ValueError(f"Phase {self.kind.value} ends ({self.end}) before it starts ({self.start})")

        if self.kind == PhaseKind.SEED:
            if self.end != self.start:
                raise ValueError(f"Seed phase must cover a single month, got {self.start}..{self.end}")
            if self.model is None or self.budget_usd is None:
                raise ValueError(f"Seed phase at {self.start} needs 'model' and 'budget_usd'")
        elif self.kind == PhaseKind.REINVEST:
            if self.model is None or self.reinvest_ratio is None:
                raise ValueError(f"Reinvest phase at {self.start} needs 'model' and 'reinvest_ratio'")
        return self

    def contains(self, month: str) -> bool:
        return self.start <= month and (self.end is None or month <= self.end)


def _default_fleet() -> List[FleetSlot]:
    return [
        FleetSlot(key="s19_pro", model="Antminer S19 Pro"),
        FleetSlot(key="s21", model="Antminer S21"),
    ]


def _default_phases() -> List[PhaseDefinition]:
    # 2020-06 is the month after the third halving; 2023-10 is the first S21 shipment.
    return [
        PhaseDefinition(kind=PhaseKind.SEED, start="2020-06", model="s19_pro", budget_usd=25_000_000),
        PhaseDefinition(kind=PhaseKind.REINVEST, start="2020-07", end="2021-12", model="s19_pro", reinvest_ratio=0.75),
        PhaseDefinition(kind=PhaseKind.DORMANT, start="2022-01", end="2023-09"),
        PhaseDefinition(kind=PhaseKind.SEED, start="2023-10", model="s21", budget_usd=50_000_000),
        PhaseDefinition(kind=PhaseKind.REINVEST, start="2023-11", end="2024-12", model="s21", reinvest_ratio=0.5),
        PhaseDefinition(kind=PhaseKind.ACCUMULATE, start="2025-01"),
    ]


class StrategyConfig(BaseModel):
    """Fleet slots plus an ordered, non-overlapping phase table."""
    fleet: List[FleetSlot] = Field(default_factory=_default_fleet, min_length=1)
    phases: List[PhaseDefinition] = Field(default_factory=_default_phases)

    @model_validator(mode="after")
    def _check_phase_table(self):
        keys = [slot.key for slot in self.fleet]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate fleet slot keys: {keys}")

        for phase in self.phases:
            if phase.model is not None and phase.model not in keys:
                raise ValueError(f"Phase at {phase.start} references unknown fleet slot '{phase.model}'")

        for prev, cur in zip(self.phases, self.phases[1:]):
            if cur.start <= prev.start:
                raise ValueError(f"Phases must be in ascending start order ({prev.start} then {cur.start})")
            if prev.end is None or cur.start <= prev.end:
                raise ValueError(f"Phase starting {cur.start} overlaps phase starting {prev.start}")
        return self


# ──────────────────────────────────────────────────────────
# API
# ──────────────────────────────────────────────────────────
class PipelineRowsResponse(BaseModel):
    file: str
    row_count: int
    rows: List[dict]


class SimulationSummary(BaseModel):
    months_simulated: int
    first_month: Optional[str]
    last_month: Optional[str]
    total_capex_usd: float
    total_btc_mined: float
    total_btc_sold: float
    final_btc_balance: float
    final_fleet: Dict[str, int]
    last_max_price_usd: Optional[float]
    final_btc_value_usd: float
    roi_percent: Optional[float]
    retained_btc_value_usd: float
