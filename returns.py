from typing import List, Optional, Union

import numpy as np
from loguru import logger

from constants import (
    RANDOM_RETURN_HALF_WIDTH,
    RANDOM_RETURN_MEAN,
    RETURN_CAP,
    RETURN_FLOOR,
)

FIXED_MODE = "fixed"
RANDOM_MODE = "random"

# Labels used by the dashboard controls
MODE_LABELS = {
    "fixed growth": FIXED_MODE,
    "monte carlo": RANDOM_MODE,
}


def normalize_mode(mode: str) -> str:
    """Maps a mode or its dashboard label onto ``fixed`` / ``random``."""
    key = str(mode).strip().lower()
    return MODE_LABELS.get(key, key)


def clamp_return(value: float) -> float:
    return min(max(float(value), RETURN_FLOOR), RETURN_CAP)


def generate_returns(
    years: int,
    mode: str = FIXED_MODE,
    fixed_rate: float = 0.0,
    rng: Optional[Union[np.random.Generator, int]] = None,
) -> List[float]:
    """
    Builds the per-year return sequence for a projection, ``years + 1`` long.

    In fixed mode every year carries ``fixed_rate`` unchanged. In random mode each
    year is drawn uniformly from ``RANDOM_RETURN_MEAN +/- RANDOM_RETURN_HALF_WIDTH``
    and clamped to ``[RETURN_FLOOR, RETURN_CAP]``. ``rng`` may be a numpy Generator
    or an integer seed; when omitted an unseeded generator is used.
    """
    length = max(int(years) + 1, 0)
    mode = normalize_mode(mode)

    if mode == RANDOM_MODE:
        generator = rng if isinstance(rng, np.random.Generator) else np.random.default_rng(rng)
        draws = generator.uniform(
            RANDOM_RETURN_MEAN - RANDOM_RETURN_HALF_WIDTH,
            RANDOM_RETURN_MEAN + RANDOM_RETURN_HALF_WIDTH,
            size=length,
        )
        return np.clip(draws, RETURN_FLOOR, RETURN_CAP).tolist()

    if mode != FIXED_MODE:
        logger.warning(f"Unknown return mode '{mode}', using fixed returns.")
    return [float(fixed_rate)] * length
