import datetime as _dt
import hashlib
from typing import Any, Dict, Optional

import pandas as pd
from loguru import logger


def _generate_seed_from_timestamp() -> int:
    ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
    return int.from_bytes(hashlib.sha256(ts.encode()).digest()[:8], "big") % (2**32 - 1)


def log_input_parameters(config, book_inputs=None) -> None:
    """Logs the input parameters for the projection."""
    logger.info(f"--- Input Parameters For Scenario: {config.Nickname} ---")
    for key, value in config.model_dump(by_alias=False).items():
        if key == "Nickname":
            continue
        label = key.replace("_", " ").title()
        if isinstance(value, float) and "rate" in key:
            logger.info(f"{label}: {value * 100:.2f}%")
        elif isinstance(value, (float, int)) and ("value" in key or "base" in key):
            logger.info(f"{label}: ${value:,.2f}")
        else:
            logger.info(f"{label}: {value}")

    if book_inputs is not None:
        logger.info(f"Contract Records Selected: {book_inputs.record_count}")
        logger.info(f"  Book Contract Value: ${book_inputs.start_value:,.2f}")
        if book_inputs.benefit_base is not None:
            logger.info(f"  Book Benefit Base: ${book_inputs.benefit_base:,.2f}")
        logger.info(f"  Avg Payout Rate: {book_inputs.payout_rate * 100:.2f}%")
        logger.info(f"  Avg Roll-up Rate: {book_inputs.rollup_rate * 100:.2f}%")
        logger.info(f"  Client Age: {book_inputs.client_age}")
    logger.info("--- End of Input Parameters ---")


def _log_summary(title: str, payout_rate: float, summary: Dict[str, Any]) -> None:
    first_income_year = summary.get("first_income_year")
    logger.info(f"{title} (payout {payout_rate * 100:.2f}%):")
    logger.info(f"  Annual Income: ${summary['annual_income']:,.2f}")
    logger.info(
        f"  First Income Year: {first_income_year if first_income_year is not None else 'none'}"
    )
    logger.info(f"  Total Income: ${summary['total_income']:,.2f}")
    logger.info(f"  Final Contract Value: ${summary['final_value']:,.2f}")
    logger.info(f"  Final Benefit Base: ${summary['final_benefit_base']:,.2f}")


def log_projection_results(
    result, percentiles_df: Optional[pd.DataFrame] = None
) -> None:
    """Logs the client and comparison outcomes, and the final-year bands if present."""
    logger.info(f"--- Projection Results for Scenario: '{result.scenario}' ---")
    _log_summary("Client Contract", result.client_payout_rate, result.client_summary)
    _log_summary(
        "Comparison Product", result.comparison_payout_rate, result.comparison_summary
    )

    if percentiles_df is not None and not percentiles_df.empty:
        logger.info("Final Contract Value Percentiles (Monte Carlo, $):")
        for p_val, value in percentiles_df.iloc[-1].items():
            logger.info(f"  {p_val * 100:.0f}th: {max(0, value):,.2f}")
