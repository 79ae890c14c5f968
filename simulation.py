import datetime as _dt
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import BaseModel

from book import BookInputs
from config import ProjectionConfig
from constants import MAX_SAMPLE_PATHS, PERCENTILES
from payout import PayoutRateResolver
from projection import ProjectionPoint, simulate_projection, summarize_trajectory
from returns import RANDOM_MODE, generate_returns
from utils import _generate_seed_from_timestamp


class ComparisonResult(BaseModel):
    """Client contract trajectory next to a comparison product on the same returns."""

    scenario: str
    client: List[ProjectionPoint]
    comparison: List[ProjectionPoint]
    client_payout_rate: float
    comparison_payout_rate: float
    returns: List[float]
    client_summary: Dict[str, Any]
    comparison_summary: Dict[str, Any]


class AnnuityScenarioSimulator:
    """
    Runs projection scenarios for a configured book of annuity contracts.

    Engine inputs come from the config unless aggregated contract records are
    supplied, in which case the records' value, rates and client age take over.
    """

    def __init__(
        self,
        params_model: ProjectionConfig,
        book_inputs: Optional[BookInputs] = None,
        resolver: Optional[PayoutRateResolver] = None,
        main_seed_override: Optional[int] = None,
    ):
        self.params_model = params_model.model_copy(deep=True)
        self.book_inputs = book_inputs
        self.resolver = resolver or PayoutRateResolver()

        if main_seed_override is not None:
            self.main_seed = main_seed_override
        elif self.params_model.seed is not None:
            self.main_seed = self.params_model.seed
        else:
            self.main_seed = _generate_seed_from_timestamp()

        # Calendar year of projection year 0, shared by comparison and Monte Carlo runs
        self.start_year = (
            self.params_model.start_year
            if self.params_model.start_year is not None
            else _dt.date.today().year
        )
        logger.info(
            f"Simulator initialized for scenario '{self.params_model.Nickname}' with main seed: {self.main_seed}"
        )

    @property
    def start_value(self) -> float:
        if self.book_inputs is not None:
            return self.book_inputs.start_value
        return self.params_model.start_value

    @property
    def client_benefit_base(self) -> Optional[float]:
        if self.book_inputs is not None:
            return self.book_inputs.benefit_base
        return self.params_model.initial_benefit_base

    @property
    def client_payout_rate(self) -> float:
        if self.book_inputs is not None:
            return self.book_inputs.payout_rate
        return self.params_model.payout_rate

    @property
    def rollup_rate(self) -> float:
        if self.book_inputs is not None:
            return self.book_inputs.rollup_rate
        return self.params_model.rollup_rate

    @property
    def client_age(self) -> int:
        if self.book_inputs is not None:
            return self.book_inputs.client_age
        return self.params_model.client_age

    @property
    def fixed_rate(self) -> float:
        # Fixed growth follows the roll-up rate unless the config pins a rate
        if self.params_model.fixed_rate is not None:
            return self.params_model.fixed_rate
        return self.rollup_rate

    def _project(
        self, returns: List[float], payout_rate: float, initial_benefit_base: Optional[float]
    ) -> List[ProjectionPoint]:
        p = self.params_model
        return simulate_projection(
            start_value=self.start_value,
            years=p.years,
            income_start=p.income_start,
            payout_rate=payout_rate,
            returns=returns,
            rollup_rate=self.rollup_rate,
            initial_benefit_base=initial_benefit_base,
            start_year=self.start_year,
        )

    def run_comparison(self, rng: Optional[np.random.Generator] = None) -> ComparisonResult:
        """
        Projects the client's contract and a comparison product over one shared
        return sequence. The comparison product's payout rate is looked up by client
        age and its benefit base starts from the client's contract value.
        """
        p = self.params_model
        if rng is None:
            rng = np.random.default_rng(self.main_seed)
        returns = generate_returns(p.years, p.mode, self.fixed_rate, rng=rng)

        comparison_rate = self.resolver.resolve(self.client_age)
        logger.info(
            f"Projecting '{p.Nickname}': start value ${self.start_value:,.2f}, {p.years} yrs, "
            f"income from year {p.income_start}, client payout {self.client_payout_rate * 100:.2f}%, "
            f"comparison payout {comparison_rate * 100:.2f}% (age {self.client_age}), mode {p.mode}"
        )

        client = self._project(returns, self.client_payout_rate, self.client_benefit_base)
        comparison = self._project(returns, comparison_rate, self.start_value)

        return ComparisonResult(
            scenario=p.Nickname,
            client=client,
            comparison=comparison,
            client_payout_rate=self.client_payout_rate,
            comparison_payout_rate=comparison_rate,
            returns=returns,
            client_summary=summarize_trajectory(client),
            comparison_summary=summarize_trajectory(comparison),
        )

    def _run_single_path(self, path_seed: int) -> List[float]:
        p = self.params_model
        returns = generate_returns(p.years, RANDOM_MODE, self.fixed_rate, rng=path_seed)
        points = self._project(returns, self.client_payout_rate, self.client_benefit_base)
        return [pt.value for pt in points]

    def run_monte_carlo(
        self, num_paths: Optional[int] = None
    ) -> Tuple[pd.DataFrame, List[List[float]]]:
        """
        Repeats the client projection over independently sampled return paths.

        Returns a frame of contract-value percentiles (rows are calendar years,
        columns are the quantiles in ``PERCENTILES``) and a few sample paths.
        """
        if num_paths is None:
            num_paths = self.params_model.num_paths
        path_seeds = [self.main_seed + i for i in range(num_paths)]
        logger.debug(
            f"Running {num_paths} random return paths for '{self.params_model.Nickname}'."
        )

        trajectories_raw = [self._run_single_path(seed) for seed in path_seeds]
        if not trajectories_raw or not trajectories_raw[0]:
            logger.warning(
                f"Monte Carlo run for '{self.params_model.Nickname}' produced no trajectories."
            )
            return pd.DataFrame(columns=PERCENTILES), []

        trajectory_df = pd.DataFrame(trajectories_raw).transpose()  # Rows are years
        percentiles_df = trajectory_df.quantile(PERCENTILES, axis=1).transpose()
        percentiles_df.index = percentiles_df.index + self.start_year

        num_samples = min(trajectory_df.shape[1], MAX_SAMPLE_PATHS)
        sample_paths = trajectory_df.sample(
            n=num_samples, axis=1, random_state=self.main_seed % (2**32 - 1)
        ).values.T.tolist()

        return percentiles_df, sample_paths
