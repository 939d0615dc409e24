"""
Reward accrual policy.

    reward = (basis * rate_numerator // rate_denominator) * (elapsed // period_seconds)

The per-period reward is floored before it is multiplied by the number of
whole elapsed periods. ``basis`` is either the whole position that accrued
during the window (default) or only the principal being withdrawn.
"""

from dataclasses import dataclass
from enum import Enum

from ..constants import (
    DEFAULT_REWARD_BASIS,
    DEFAULT_REWARD_PERIOD_SECONDS,
    DEFAULT_REWARD_RATE_DENOMINATOR,
    DEFAULT_REWARD_RATE_NUMERATOR,
    U64_MAX,
)
from .errors import ArithmeticOverflowError


class RewardBasis(Enum):
    """Which principal earns the reward at unstake time."""
    POSITION = "position"     # full staked amount over the window
    WITHDRAWN = "withdrawn"   # only the amount being unstaked


@dataclass(frozen=True)
class RewardPolicy:
    rate_numerator: int = DEFAULT_REWARD_RATE_NUMERATOR
    rate_denominator: int = DEFAULT_REWARD_RATE_DENOMINATOR
    period_seconds: int = DEFAULT_REWARD_PERIOD_SECONDS
    basis: RewardBasis = RewardBasis(DEFAULT_REWARD_BASIS)

    def __post_init__(self):
        if self.rate_numerator < 0:
            raise ValueError("rate_numerator cannot be negative")
        if self.rate_denominator <= 0:
            raise ValueError("rate_denominator must be positive")
        if self.period_seconds <= 0:
            raise ValueError("period_seconds must be positive")

    def reward_per_period(self, principal: int) -> int:
        return principal * self.rate_numerator // self.rate_denominator

    def compute(self, position: int, withdrawn: int, elapsed: int) -> int:
        """
        Reward owed when *withdrawn* of a *position* is unstaked after
        *elapsed* seconds. Negative elapsed (clock skew) earns nothing.

        Raises:
            ArithmeticOverflowError: Result does not fit in u64
        """
        principal = position if self.basis is RewardBasis.POSITION else withdrawn
        periods = max(0, elapsed) // self.period_seconds

        reward = self.reward_per_period(principal) * periods
        if reward > U64_MAX:
            raise ArithmeticOverflowError(f"Reward {reward} exceeds u64")
        return reward
