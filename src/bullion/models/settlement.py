"""Settlement models — reward rates and the reward credits they produce.

Reward points are plain integers. Rates are applied with floor division
by the fee engine; nothing here does arithmetic.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace


class RewardRateKind(str, enum.Enum):
    """Which reward rate an administrator is changing."""
    SILVER_PER_OZ = "silver_per_oz"
    GOLD_PER_GRAM = "gold_per_gram"
    VALIDATOR = "validator"


class CreditReason(str, enum.Enum):
    """Why a reward credit was issued."""
    REGISTRATION = "registration"
    FINALIZING_VOTE = "finalizing_vote"


@dataclass(frozen=True)
class RewardRates:
    """Reward-point rates.

    silver_reward_per_oz: points per troy ounce of registered silver.
    gold_reward_per_gram: points per gram of registered gold.
    validator_reward: flat points for the vote that finalizes an asset.
    """
    silver_reward_per_oz: int
    gold_reward_per_gram: int
    validator_reward: int

    def with_rate(self, kind: RewardRateKind, value: int) -> RewardRates:
        if value < 0:
            raise ValueError(f"Reward rate must be non-negative, got {value}")
        if kind == RewardRateKind.SILVER_PER_OZ:
            return replace(self, silver_reward_per_oz=value)
        if kind == RewardRateKind.GOLD_PER_GRAM:
            return replace(self, gold_reward_per_gram=value)
        return replace(self, validator_reward=value)

    def rate_for(self, kind: RewardRateKind) -> int:
        if kind == RewardRateKind.SILVER_PER_OZ:
            return self.silver_reward_per_oz
        if kind == RewardRateKind.GOLD_PER_GRAM:
            return self.gold_reward_per_gram
        return self.validator_reward

    def to_dict(self) -> dict[str, int]:
        return {
            "silver_reward_per_oz": self.silver_reward_per_oz,
            "gold_reward_per_gram": self.gold_reward_per_gram,
            "validator_reward": self.validator_reward,
        }


@dataclass(frozen=True)
class RewardCredit:
    """A single credit applied to an account.

    balance_after is the account balance once the credit is applied.
    """
    account_id: str
    amount: int
    reason: CreditReason
    asset_id: int
    balance_after: int
