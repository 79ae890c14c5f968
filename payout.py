from typing import Iterable, List, Optional, Tuple

from constants import DEFAULT_PAYOUT_SCHEDULE, FALLBACK_PAYOUT_RATE


class PayoutRateResolver:
    """
    Age-banded payout rate lookup.

    Bands are ``(min_age, rate)`` pairs held in descending ``min_age`` order; the
    first band whose ``min_age`` is at or below the client's age wins. Ages below
    every band resolve to the fallback rate.
    """

    def __init__(
        self,
        schedule: Iterable[Tuple[int, float]] = DEFAULT_PAYOUT_SCHEDULE,
        fallback_rate: Optional[float] = None,
    ):
        self.bands: List[Tuple[int, float]] = sorted(
            ((int(min_age), float(rate)) for min_age, rate in schedule),
            key=lambda band: band[0],
            reverse=True,
        )
        if fallback_rate is not None:
            self.fallback_rate = float(fallback_rate)
        elif self.bands:
            self.fallback_rate = self.bands[-1][1]
        else:
            self.fallback_rate = FALLBACK_PAYOUT_RATE

    def resolve(self, age: int) -> float:
        for min_age, rate in self.bands:
            if min_age <= age:
                return rate
        return self.fallback_rate


_DEFAULT_RESOLVER = PayoutRateResolver(fallback_rate=FALLBACK_PAYOUT_RATE)


def resolve_payout_rate(age: int) -> float:
    """Payout rate for ``age`` under the default schedule."""
    return _DEFAULT_RESOLVER.resolve(age)
