"""Fee engine — fixed-point bucketing, minting fees and registration rewards.

All arithmetic is integer floor division on scaled values:

    weight_grams                 grams × 100
    GRAMS_PER_TROY_OUNCE_SCALED  31.1034 g × 10000 = 311034

Silver is bucketed by troy ounces:

    troy_ounces = weight_grams × 10000 // (311034 × 100)
    bucket      = troy_ounces // 10000
    fee         = schedule["Silver"][bucket]
    reward      = weight_grams × silver_reward_per_oz // (311034 × 100)

Gold is bucketed by whole grams:

    bucket      = weight_grams // 100
    fee         = schedule["Gold"][bucket]
    reward      = weight_grams × gold_reward_per_gram // 100

Silver floors twice: the conversion floors to whole troy ounces, then the
bucket step truncates by a further 10000. Every silver weight under
10,000 troy ounces, which includes every weight a registration accepts,
lands in bucket 0. That rounding is part of the fee contract and must not
be changed.

The engine is pure: identical inputs always produce identical outputs.
"""

from __future__ import annotations

from bullion.errors import UnsupportedAssetTypeError
from bullion.fees.schedule import FeeSchedule
from bullion.models.asset import WEIGHT_SCALE, MetalType
from bullion.models.settlement import RewardRates


GRAMS_PER_TROY_OUNCE_SCALED = 311034
TROY_OUNCE_SCALE = 10000


class FeeEngine:
    """Computes minting fees and registration rewards.

    Usage:
        engine = FeeEngine()
        fee = engine.compute_fee("Silver", 10000, schedule)
        reward = engine.compute_registration_reward("Gold", 100, rates)
    """

    def __init__(
        self,
        grams_per_troy_ounce_scaled: int = GRAMS_PER_TROY_OUNCE_SCALED,
    ) -> None:
        if grams_per_troy_ounce_scaled <= 0:
            raise ValueError(
                "grams_per_troy_ounce_scaled must be positive, "
                f"got {grams_per_troy_ounce_scaled}"
            )
        self._grams_per_oz = grams_per_troy_ounce_scaled

    @property
    def grams_per_troy_ounce_scaled(self) -> int:
        return self._grams_per_oz

    def troy_ounces(self, weight_grams: int) -> int:
        """Whole troy ounces, floored."""
        return weight_grams * TROY_OUNCE_SCALE // (self._grams_per_oz * WEIGHT_SCALE)

    def bucket_for(self, asset_type: str, weight_grams: int) -> int:
        """Return the fee-schedule bucket for a weight.

        Raises UnsupportedAssetTypeError for types without a bucketing rule.
        """
        if asset_type == MetalType.SILVER.value:
            return self.troy_ounces(weight_grams) // TROY_OUNCE_SCALE
        if asset_type == MetalType.GOLD.value:
            return weight_grams // WEIGHT_SCALE
        raise UnsupportedAssetTypeError(f"Unsupported asset type: {asset_type!r}")

    def compute_fee(
        self,
        asset_type: str,
        weight_grams: int,
        schedule: FeeSchedule,
    ) -> int:
        return schedule.fee_for(asset_type, self.bucket_for(asset_type, weight_grams))

    def compute_registration_reward(
        self,
        asset_type: str,
        weight_grams: int,
        rates: RewardRates,
    ) -> int:
        """Reward points credited to the submitter of a new claim."""
        if asset_type == MetalType.SILVER.value:
            return (
                weight_grams * rates.silver_reward_per_oz
                // (self._grams_per_oz * WEIGHT_SCALE)
            )
        if asset_type == MetalType.GOLD.value:
            return weight_grams * rates.gold_reward_per_gram // WEIGHT_SCALE
        raise UnsupportedAssetTypeError(f"Unsupported asset type: {asset_type!r}")
