import asyncio
import json
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from book import aggregate_book_inputs, records_to_frame, select_records
from config import ProjectionConfig
from payout import resolve_payout_rate
from projection import ProjectionPoint
from simulation import AnnuityScenarioSimulator


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class TrajectorySummary(BaseModel):
    first_year_value: float
    final_value: float
    final_benefit_base: float
    annual_income: float
    first_income_year: Optional[int] = None
    total_income: float


class ProjectionResponse(BaseModel):
    scenario: str
    client_payout_rate: float
    comparison_payout_rate: float
    returns: List[float]
    client: List[ProjectionPoint]
    comparison: List[ProjectionPoint]
    client_summary: TrajectorySummary
    comparison_summary: TrajectorySummary


class BandsResponse(BaseModel):
    scenario: str
    years: List[int]
    percentiles: Dict[str, List[float]]
    sample_paths: List[List[float]]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ProjectionRequest(BaseModel):
    config: Dict[str, Any] = Field(
        ...,
        description="Projection configuration (same schema as config.json).",
    )
    records: Optional[List[Dict[str, Any]]] = Field(
        None,
        description=(
            "Raw contract book rows as uploaded by the dashboard. When present, "
            "start value, rates and client age are aggregated from these rows."
        ),
    )
    selected_contracts: Optional[List[str]] = Field(
        None,
        description="Contract numbers to include. None means every posted record.",
    )


class MonteCarloRequest(ProjectionRequest):
    num_paths: Optional[int] = Field(None, gt=0, le=20000)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level="INFO",
        colorize=True,
    )
    logger.add(
        "server.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        level="INFO",
        rotation="10 MB",
    )


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(_app: FastAPI):
    _configure_logging()
    logger.info("Annuity Projection API starting up")
    yield
    logger.info("Annuity Projection API shutting down")


app = FastAPI(
    title="Annuity Projection API",
    description="Backend API projecting annuity contract value, benefit base and income for the book review dashboard.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_config(raw: Dict[str, Any]) -> ProjectionConfig:
    try:
        return ProjectionConfig(**raw)
    except Exception as e:
        raise HTTPException(status_code=422, detail=f"Invalid configuration: {e}")


def _build_simulator(body: ProjectionRequest) -> AnnuityScenarioSimulator:
    config = _parse_config(body.config)
    book_inputs = None
    if body.records is not None:
        records = select_records(records_to_frame(body.records), body.selected_contracts)
        book_inputs = aggregate_book_inputs(records)
    return AnnuityScenarioSimulator(config, book_inputs=book_inputs)


def _run_projection(simulator: AnnuityScenarioSimulator) -> dict:
    """Synchronous work -- called via ``asyncio.to_thread``."""
    return simulator.run_comparison().model_dump()


def _run_bands(simulator: AnnuityScenarioSimulator, num_paths: Optional[int]) -> dict:
    """Synchronous work -- called via ``asyncio.to_thread``."""
    percentiles_df, sample_paths = simulator.run_monte_carlo(num_paths)
    if percentiles_df.empty:
        raise ValueError(
            f"Monte Carlo run for '{simulator.params_model.Nickname}' yielded no results."
        )

    return {
        "scenario": simulator.params_model.Nickname,
        "years": [int(y) for y in percentiles_df.index],
        "percentiles": {
            f"p{int(round(col * 100))}": [round(float(v), 2) for v in percentiles_df[col]]
            for col in percentiles_df.columns
        },
        "sample_paths": [[round(float(v), 2) for v in path] for path in sample_paths],
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/config/default")
async def get_default_config():
    """Return the bundled ``config.json`` as a ready-to-use template."""
    config_path = os.path.join(os.path.dirname(__file__), "config.json")
    if not os.path.exists(config_path):
        raise HTTPException(status_code=404, detail="Default config.json not found.")
    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


@app.get("/api/payout-rate")
async def payout_rate(age: int):
    return {"age": age, "payout_rate": resolve_payout_rate(age)}


@app.post("/api/validate")
async def validate_config(body: ProjectionRequest):
    """Validate a configuration without running any projection."""
    config = _parse_config(body.config)
    return {"valid": True, "scenario": config.Nickname}


@app.post("/api/project", response_model=ProjectionResponse)
async def project(body: ProjectionRequest):
    """Project the client contract and the comparison product side by side."""
    simulator = _build_simulator(body)
    logger.info(
        f"Received projection request for scenario '{simulator.params_model.Nickname}'"
    )

    try:
        result = await asyncio.to_thread(_run_projection, simulator)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Projection failed: {e}")
        raise HTTPException(status_code=500, detail=f"Projection error: {e}")

    logger.info(f"Projection complete for '{simulator.params_model.Nickname}'")
    return result


@app.post("/api/monte-carlo", response_model=BandsResponse)
async def monte_carlo(body: MonteCarloRequest):
    """Run random-return paths and return contract value percentile bands."""
    simulator = _build_simulator(body)
    logger.info(
        f"Received Monte Carlo request for scenario '{simulator.params_model.Nickname}'"
    )

    try:
        result = await asyncio.to_thread(_run_bands, simulator, body.num_paths)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Monte Carlo run failed: {e}")
        raise HTTPException(status_code=500, detail=f"Monte Carlo error: {e}")

    logger.info(f"Monte Carlo run complete for '{simulator.params_model.Nickname}'")
    return result


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _configure_logging()
    uvicorn.run("server:app", host="0.0.0.0", port=8080, reload=True)
