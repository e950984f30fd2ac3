"""API routes exposing the pipeline outputs to the dashboard."""
import json
import logging
from typing import List

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from .. import pipeline
from ..config import (
    ENERGY_USAGE_FILE, MINING_MONTHLY_FILE, SIMULATION_FILE, SUMMARY_FILE,
    SURPLUS_FILE, Settings, get_settings,
)
from ..errors import PipelineError
from ..schemas import PipelineRowsResponse, SimulationSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pipeline", tags=["Pipeline"])


def current_settings() -> Settings:
    """Dependency: settings are re-read from the environment per request."""
    try:
        return get_settings()
    except (ValidationError, ValueError) as e:
        logger.error("Invalid settings: %s", e)
        raise HTTPException(status_code=500, detail=f"Invalid settings: {e}")


def _read_rows(settings: Settings, name: str) -> PipelineRowsResponse:
    path = settings.output_path(name)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"{name} has not been generated yet")

    df = pd.read_csv(path, dtype={"month": str})
    rows: List[dict] = json.loads(df.to_json(orient="records", double_precision=15))
    return PipelineRowsResponse(file=name, row_count=len(rows), rows=rows)


@router.get("/mining-monthly", response_model=PipelineRowsResponse)
def get_mining_monthly(settings: Settings = Depends(current_settings)):
    return _read_rows(settings, MINING_MONTHLY_FILE)


@router.get("/surplus", response_model=PipelineRowsResponse)
def get_surplus(settings: Settings = Depends(current_settings)):
    return _read_rows(settings, SURPLUS_FILE)


@router.get("/simulation", response_model=PipelineRowsResponse)
def get_simulation(settings: Settings = Depends(current_settings)):
    return _read_rows(settings, SIMULATION_FILE)


@router.get("/energy-usage", response_model=PipelineRowsResponse)
def get_energy_usage(settings: Settings = Depends(current_settings)):
    return _read_rows(settings, ENERGY_USAGE_FILE)


@router.get("/summary", response_model=SimulationSummary)
def get_summary(settings: Settings = Depends(current_settings)):
    path = settings.output_path(SUMMARY_FILE)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"{SUMMARY_FILE} has not been generated yet")
    return SimulationSummary(**json.loads(path.read_text(encoding="utf-8")))


@router.post("/run", response_model=SimulationSummary)
def run(settings: Settings = Depends(current_settings)):
    try:
        summary = pipeline.run_pipeline(settings)
    except PipelineError as e:
        logger.error("Pipeline run failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return SimulationSummary(**summary)
