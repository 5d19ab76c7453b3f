"""Tests for the fee engine — proves fixed-point bucketing reproduces exactly.

Silver floors twice (grams → whole troy ounces, then a further ÷10000).
These tests pin that rounding down so nobody "fixes" it.
"""

import pytest

from bullion.errors import UnsupportedAssetTypeError
from bullion.fees.engine import GRAMS_PER_TROY_OUNCE_SCALED, FeeEngine
from bullion.fees.schedule import FeeSchedule
from bullion.models.settlement import RewardRates


@pytest.fixture
def engine() -> FeeEngine:
    return FeeEngine()


@pytest.fixture
def schedule() -> FeeSchedule:
    return FeeSchedule({
        "Silver": {0: 2, 1: 3},
        "Gold": {0: 5, 1: 6, 2: 7},
    })


def _rates(silver: int = 10_000_000, gold: int = 100, validator: int = 50) -> RewardRates:
    return RewardRates(
        silver_reward_per_oz=silver,
        gold_reward_per_gram=gold,
        validator_reward=validator,
    )


class TestSilverFee:
    def test_hundred_grams_lands_in_bucket_zero(
        self, engine: FeeEngine, schedule: FeeSchedule,
    ) -> None:
        # 100.00 g → 10000 * 10000 // 31103400 = 3 → 3 // 10000 = 0
        assert engine.troy_ounces(10000) == 3
        assert engine.bucket_for("Silver", 10000) == 0
        assert engine.compute_fee("Silver", 10000, schedule) == 2

    def test_conversion_constant(self) -> None:
        assert GRAMS_PER_TROY_OUNCE_SCALED == 311034

    def test_conversion_floors_to_whole_ounces(self, engine: FeeEngine) -> None:
        # 3 troy ounces = 93.3102 g
        assert engine.troy_ounces(9331) == 2
        assert engine.troy_ounces(9332) == 3

    def test_double_floor_keeps_ounces_in_bucket_zero(self, engine: FeeEngine) -> None:
        """Three full troy ounces of silver still fall in bucket 0."""
        assert engine.bucket_for("Silver", 9332) == 0

    def test_bucket_one_boundary(self, engine: FeeEngine) -> None:
        boundary = GRAMS_PER_TROY_OUNCE_SCALED * 100
        assert engine.bucket_for("Silver", boundary - 1) == 0
        assert engine.bucket_for("Silver", boundary) == 1

    def test_maximum_valid_weight_is_bucket_zero(self, engine: FeeEngine) -> None:
        assert engine.troy_ounces(10_000_000) == 3215
        assert engine.bucket_for("Silver", 10_000_000) == 0

    def test_zero_weight(self, engine: FeeEngine, schedule: FeeSchedule) -> None:
        assert engine.compute_fee("Silver", 0, schedule) == 2


class TestGoldFee:
    def test_one_gram_lands_in_bucket_one(
        self, engine: FeeEngine, schedule: FeeSchedule,
    ) -> None:
        assert engine.bucket_for("Gold", 100) == 1
        assert engine.compute_fee("Gold", 100, schedule) == 6

    def test_fractional_grams_floor(self, engine: FeeEngine, schedule: FeeSchedule) -> None:
        assert engine.compute_fee("Gold", 99, schedule) == 5
        assert engine.compute_fee("Gold", 199, schedule) == 6
        assert engine.compute_fee("Gold", 250, schedule) == 7

    def test_missing_bucket_reads_zero(self, engine: FeeEngine, schedule: FeeSchedule) -> None:
        assert engine.compute_fee("Gold", 300, schedule) == 0


class TestUnsupportedType:
    @pytest.mark.parametrize("asset_type", ["Platinum", "gold", "SILVER", ""])
    def test_unknown_types_rejected(
        self, engine: FeeEngine, schedule: FeeSchedule, asset_type: str,
    ) -> None:
        with pytest.raises(UnsupportedAssetTypeError):
            engine.compute_fee(asset_type, 100, schedule)

    def test_reward_for_unknown_type_rejected(self, engine: FeeEngine) -> None:
        with pytest.raises(UnsupportedAssetTypeError):
            engine.compute_registration_reward("Palladium", 100, _rates())


class TestRegistrationReward:
    def test_silver_reward(self, engine: FeeEngine) -> None:
        # 10000 * 10_000_000 // 31103400
        assert engine.compute_registration_reward("Silver", 10000, _rates()) == 3215

    def test_silver_reward_floors(self, engine: FeeEngine) -> None:
        assert engine.compute_registration_reward("Silver", 3110, _rates()) == 999
        assert engine.compute_registration_reward("Silver", 10000, _rates(silver=1000)) == 0

    def test_gold_reward(self, engine: FeeEngine) -> None:
        assert engine.compute_registration_reward("Gold", 100, _rates()) == 100
        assert engine.compute_registration_reward("Gold", 155, _rates(gold=3)) == 4

    def test_zero_rate_pays_nothing(self, engine: FeeEngine) -> None:
        assert engine.compute_registration_reward("Gold", 10_000_000, _rates(gold=0)) == 0


class TestPurity:
    def test_identical_inputs_identical_fees(
        self, engine: FeeEngine, schedule: FeeSchedule,
    ) -> None:
        first = [engine.compute_fee("Gold", w, schedule) for w in range(0, 400, 7)]
        second = [engine.compute_fee("Gold", w, schedule) for w in range(0, 400, 7)]
        assert first == second

    def test_fee_follows_current_schedule(
        self, engine: FeeEngine, schedule: FeeSchedule,
    ) -> None:
        schedule.set_fee("Gold", 1, 60)
        assert engine.compute_fee("Gold", 100, schedule) == 60


class TestEngineConfig:
    def test_custom_conversion_constant(self) -> None:
        engine = FeeEngine(grams_per_troy_ounce_scaled=100)
        # w * 10000 // (100 * 100) = w
        assert engine.troy_ounces(100) == 100
        assert engine.bucket_for("Silver", 9_999) == 0
        assert engine.bucket_for("Silver", 10_000) == 1

    def test_non_positive_conversion_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            FeeEngine(grams_per_troy_ounce_scaled=0)


class TestFeeSchedule:
    def test_from_config_parses_string_buckets(self) -> None:
        schedule = FeeSchedule.from_config({"Gold": {"1": 6, "10": 15}})
        assert schedule.fee_for("Gold", 1) == 6
        assert schedule.fee_for("Gold", 10) == 15
        assert schedule.buckets("Gold") == {1: 6, 10: 15}

    def test_unknown_type_reads_zero(self) -> None:
        assert FeeSchedule().fee_for("Gold", 1) == 0

    def test_negative_fee_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            FeeSchedule().set_fee("Gold", 1, -1)

    def test_negative_bucket_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            FeeSchedule().set_fee("Gold", -1, 1)

    def test_to_dict_is_json_shaped(self) -> None:
        schedule = FeeSchedule({"Gold": {10: 15, 1: 6}})
        assert schedule.to_dict() == {"Gold": {"1": 6, "10": 15}}
