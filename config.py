import os
import json
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field, field_validator, ValidationInfo
from loguru import logger

from constants import (
    DEFAULT_CLIENT_AGE,
    DEFAULT_HORIZON_YEARS,
    DEFAULT_NUM_PATHS,
    MAX_INCOME_START_YEARS,
    MAX_ROLLUP_YEARS,
)
from returns import normalize_mode


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be loaded or parsed."""


class ProjectionConfig(BaseModel):
    """Configuration for a single annuity projection scenario."""

    Nickname: str = Field(
        "DefaultScenario",
        alias="scenario",
        description="A nickname for this projection scenario.",
    )
    start_value: float = Field(
        0.0, ge=0, description="Combined contract value at the start of the projection."
    )
    initial_benefit_base: Optional[float] = Field(
        None,
        ge=0,
        description="Starting benefit base. None means it starts equal to start_value.",
    )
    years: int = Field(DEFAULT_HORIZON_YEARS, ge=0, le=100)
    income_start: int = Field(
        0,
        ge=0,
        le=MAX_INCOME_START_YEARS,
        description="Projection year in which income withdrawals begin.",
    )
    payout_rate: float = Field(0.0, ge=0.0, le=1.0)
    rollup_rate: float = Field(0.0, ge=0.0)
    mode: Literal["fixed", "random"] = Field(
        "fixed", description="'fixed' (Fixed Growth) or 'random' (Monte Carlo)."
    )
    fixed_rate: Optional[float] = Field(
        None, description="Annual return in fixed mode. None means the roll-up rate."
    )
    client_age: int = Field(
        DEFAULT_CLIENT_AGE,
        description="Client age used to look up the comparison product payout rate.",
    )
    start_year: Optional[int] = Field(
        None, description="Calendar year of projection year 0. None means the current year."
    )
    seed: Optional[int] = Field(None)
    num_paths: int = Field(DEFAULT_NUM_PATHS, gt=0)

    model_config = {"validate_by_name": True, "validate_assignment": True}

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode_label(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_mode(v)
        return v

    @field_validator("income_start")
    @classmethod
    def check_income_start(cls, v: int, info: ValidationInfo) -> int:
        if v > MAX_ROLLUP_YEARS:
            scen_name = info.data.get("Nickname", "N/A")
            logger.warning(
                f"Income start year {v} is beyond the {MAX_ROLLUP_YEARS}-year roll-up period "
                f"for scenario '{scen_name}'. Balances stay flat from year {MAX_ROLLUP_YEARS} "
                f"until income begins."
            )
        return v


def load_config_from_json(file_path: str) -> Dict[str, Any]:
    """Loads and returns the configuration dictionary from a JSON file."""
    if not os.path.exists(file_path):
        raise ConfigurationError(f"Configuration file not found at: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Error parsing JSON file '{file_path}': {e}"
        ) from e
    except Exception as e:
        raise ConfigurationError(
            f"Unexpected error reading config file '{file_path}': {e}"
        ) from e
