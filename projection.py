import datetime as _dt
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd
from loguru import logger
from pydantic import BaseModel

from constants import MAX_ROLLUP_YEARS
from returns import clamp_return


class ProjectionPoint(BaseModel):
    """One projected year of an annuity contract."""

    year: int
    value: float
    income: float
    benefit_base: float
    avg_return: float
    applied_return: float
    rollup_used: bool

    model_config = {"frozen": True}


def simulate_projection(
    start_value: float,
    years: int,
    income_start: int,
    payout_rate: float,
    returns: Sequence[float],
    rollup_rate: float,
    initial_benefit_base: Optional[float] = None,
    start_year: Optional[int] = None,
) -> List[ProjectionPoint]:
    """
    Projects contract value, benefit base and income year by year.

    Before ``income_start`` and within the first ``MAX_ROLLUP_YEARS`` years, value and
    benefit base compound at the clamped market return, floored at ``rollup_rate``.
    Otherwise the contract is in withdrawal: income is locked in once, at
    ``income_start``, as ``benefit_base * payout_rate`` and deducted every year after,
    with both balances floored at zero. Returns ``years + 1`` points sorted by year.
    """
    if start_year is None:
        start_year = _dt.date.today().year

    contract_value = float(start_value)
    benefit_base = (
        float(initial_benefit_base) if initial_benefit_base is not None else contract_value
    )
    income = 0.0
    points: List[ProjectionPoint] = []

    for i in range(int(years) + 1):
        raw_return = returns[i] if i < len(returns) else 0.0
        ret = clamp_return(raw_return)

        rollup_used = i < income_start and ret < rollup_rate
        grow = rollup_rate if rollup_used else ret

        if i < income_start and i < MAX_ROLLUP_YEARS:
            contract_value *= 1 + grow
            benefit_base *= 1 + grow
        else:
            if i == income_start:
                income = benefit_base * payout_rate
            elif i < income_start:
                logger.debug(
                    f"Year {i}: roll-up period expired before income start ({income_start}), balances held flat."
                )
            contract_value = max(contract_value - income, 0.0)
            benefit_base = max(benefit_base - income, 0.0)

        points.append(
            ProjectionPoint(
                year=start_year + i,
                value=contract_value,
                income=income if i >= income_start else 0.0,
                benefit_base=benefit_base,
                avg_return=ret,
                applied_return=grow,
                rollup_used=rollup_used,
            )
        )

    return sorted(points, key=lambda p: p.year)


def income_to_date(
    points: Sequence[ProjectionPoint], through_year: Optional[int] = None
) -> float:
    """Total income paid up to and including ``through_year`` (all years if None)."""
    return sum(
        p.income for p in points if through_year is None or p.year <= through_year
    )


def summarize_trajectory(
    points: Sequence[ProjectionPoint],
) -> Dict[str, Union[float, int, None]]:
    if not points:
        return {
            "first_year_value": 0.0,
            "final_value": 0.0,
            "final_benefit_base": 0.0,
            "annual_income": 0.0,
            "first_income_year": None,
            "total_income": 0.0,
        }

    first_income_year = next((p.year for p in points if p.income > 0), None)
    return {
        "first_year_value": points[0].value,
        "final_value": points[-1].value,
        "final_benefit_base": points[-1].benefit_base,
        "annual_income": points[-1].income,
        "first_income_year": first_income_year,
        "total_income": income_to_date(points),
    }


def trajectory_to_frame(points: Sequence[ProjectionPoint]) -> pd.DataFrame:
    """Tabular view of a trajectory, one row per year, with cumulative income."""
    columns = list(ProjectionPoint.model_fields)
    df = pd.DataFrame([p.model_dump() for p in points], columns=columns)
    df["income_to_date"] = df["income"].cumsum()
    return df
