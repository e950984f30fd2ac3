"""Capital-allocation strategy: phase lookup and fleet resolution.

The strategy is a table of phases over the calendar (see StrategyConfig).
Each simulated month is mapped to at most one phase by interval lookup;
a month outside every phase is treated as dormant.
"""
import bisect
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..errors import StrategyError
from ..schemas import MinerModel, PhaseDefinition, PhaseKind, StrategyConfig

logger = logging.getLogger(__name__)


def load_strategy(path: Optional[Path] = None) -> StrategyConfig:
    """Load a strategy JSON file, or the built-in default when ``path`` is None."""
    if path is None:
        return StrategyConfig()

    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StrategyError(f"Failed to read strategy file {path}: {e}") from e
    try:
        strategy = StrategyConfig.model_validate_json(raw)
    except ValidationError as e:
        raise StrategyError(f"Invalid strategy file {path}: {e}") from e

    logger.info("Loaded strategy from %s (%d phases)", path, len(strategy.phases))
    return strategy


def phase_for_month(phases: List[PhaseDefinition], month: str) -> Optional[PhaseDefinition]:
    """Return the phase whose [start, end] range contains ``month``, if any.

    ``phases`` must be ordered and non-overlapping (StrategyConfig enforces this).
    """
    starts = [phase.start for phase in phases]
    idx = bisect.bisect_right(starts, month) - 1
    if idx < 0:
        return None
    phase = phases[idx]
    return phase if phase.contains(month) else None


def phase_kind(phase: Optional[PhaseDefinition]) -> PhaseKind:
    return phase.kind if phase is not None else PhaseKind.DORMANT


def resolve_fleet(strategy: StrategyConfig, catalog: Dict[str, MinerModel]) -> Dict[str, MinerModel]:
    """Map each fleet slot key to its catalog model, preserving slot order."""
    fleet: Dict[str, MinerModel] = {}
    for slot in strategy.fleet:
        miner = catalog.get(slot.model)
        if miner is None:
            raise StrategyError(
                f"Fleet slot '{slot.key}' references '{slot.model}', which is not in the miner catalog"
            )
        fleet[slot.key] = miner
        logger.info(
            "%s: %.0f TH/s, %.0fW, $%.0f",
            miner.name, miner.hash_rate_th, miner.power_watts, miner.unit_cost_usd,
        )
    return fleet


def describe_strategy(strategy: StrategyConfig, fleet: Dict[str, MinerModel]) -> List[str]:
    """Human-readable one-liners for each phase, used in run logs."""
    lines: List[str] = []
    for phase in strategy.phases:
        span = phase.start if phase.end == phase.start else f"{phase.start} to {phase.end or 'end'}"
        name = fleet[phase.model].name if phase.model in fleet else None
        if phase.kind == PhaseKind.SEED:
            lines.append(f"{span}: Buy ${phase.budget_usd / 1e6:.0f}M of {name}")
        elif phase.kind == PhaseKind.REINVEST:
            lines.append(f"{span}: Sell {phase.reinvest_ratio:.0%} of newly mined BTC, buy more {name}")
        elif phase.kind == PhaseKind.DORMANT:
            lines.append(f"{span}: Accumulate BTC, no purchases")
        else:
            lines.append(f"{span}: Accumulate BTC with frozen fleet")
    return lines
