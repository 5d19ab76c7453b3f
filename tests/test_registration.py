"""Tests for the registration engine — a claim is either fully registered or rejected untouched."""

from datetime import datetime, timezone

import pytest

from bullion.engine.registration import RegistrationEngine
from bullion.engine.registry import AssetRegistry
from bullion.errors import NotFoundError, UnsupportedAssetTypeError, ValidationError
from bullion.fees.engine import FeeEngine
from bullion.fees.schedule import FeeSchedule
from bullion.models.asset import (
    MAX_PURITY_PERCENTAGE,
    MAX_WEIGHT_GRAMS,
    AssetClaim,
    AssetStatus,
)
from bullion.models.settlement import CreditReason, RewardRateKind, RewardRates
from bullion.rewards.ledger import RewardLedger


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _claim(**overrides) -> AssetClaim:
    fields = dict(
        name="Bar 1",
        asset_type="Gold",
        year="2024",
        asset_country="CH",
        creator_country="GB",
        asset_name="Kilobar",
        weight_grams=100,
        purity_percentage=99_990,
        quantity=1,
        is_fungible=False,
        image_uris=("ipfs://front", "ipfs://back"),
    )
    fields.update(overrides)
    return AssetClaim(**fields)


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry()


@pytest.fixture
def ledger() -> RewardLedger:
    return RewardLedger()


@pytest.fixture
def engine(registry: AssetRegistry, ledger: RewardLedger) -> RegistrationEngine:
    schedule = FeeSchedule({"Silver": {0: 2}, "Gold": {0: 5, 1: 6, 2: 7}})
    rates = RewardRates(
        silver_reward_per_oz=10_000_000, gold_reward_per_gram=100, validator_reward=50,
    )
    return RegistrationEngine(registry, FeeEngine(), schedule, ledger, rates)


class TestRegister:
    def test_gold_registration(
        self, engine: RegistrationEngine, registry: AssetRegistry, ledger: RewardLedger,
    ) -> None:
        plan = engine.register("alice", _claim(), now=NOW)
        asset = registry.get(plan.asset.asset_id)
        assert asset.asset_id == 1
        assert asset.fee == 6
        assert asset.status == AssetStatus.PENDING
        assert asset.true_votes == 0 and asset.false_votes == 0
        assert asset.creator_id == "alice"
        assert asset.registered_utc == NOW
        assert ledger.balance("alice") == 100

    def test_silver_registration(
        self, engine: RegistrationEngine, ledger: RewardLedger,
    ) -> None:
        plan = engine.register("alice", _claim(asset_type="Silver", weight_grams=10000))
        assert plan.fee == 2
        assert plan.reward.amount == 3215
        assert ledger.balance("alice") == 3215

    def test_ids_increase_from_one(self, engine: RegistrationEngine) -> None:
        ids = [engine.register("alice", _claim()).asset.asset_id for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_first_image_is_canonical(self, engine: RegistrationEngine) -> None:
        plan = engine.register("alice", _claim(image_uris=("a", "b", "c")))
        assert plan.asset.canonical_image_uri == "a"
        assert plan.asset.image_uris == ["a", "b", "c"]

    def test_reward_credit_describes_registration(self, engine: RegistrationEngine) -> None:
        engine.register("alice", _claim())
        plan = engine.register("alice", _claim())
        assert plan.reward.reason == CreditReason.REGISTRATION
        assert plan.reward.asset_id == 2
        assert plan.reward.balance_after == 200

    def test_bounds_are_inclusive(self, engine: RegistrationEngine) -> None:
        engine.register("alice", _claim(
            weight_grams=MAX_WEIGHT_GRAMS, purity_percentage=MAX_PURITY_PERCENTAGE,
        ))
        engine.register("alice", _claim(weight_grams=0, purity_percentage=0, quantity=0))


class TestRejections:
    def test_one_image_rejected_and_no_record(
        self, engine: RegistrationEngine, registry: AssetRegistry, ledger: RewardLedger,
    ) -> None:
        with pytest.raises(ValidationError, match="image"):
            engine.register("alice", _claim(image_uris=("ipfs://only",)))
        assert registry.count == 0
        assert registry.peek_next_id() == 1
        assert ledger.balance("alice") == 0
        with pytest.raises(NotFoundError):
            registry.get(1)

    @pytest.mark.parametrize("purity", [-1, MAX_PURITY_PERCENTAGE + 1])
    def test_purity_out_of_range(self, engine: RegistrationEngine, purity: int) -> None:
        with pytest.raises(ValidationError, match="Purity"):
            engine.register("alice", _claim(purity_percentage=purity))

    @pytest.mark.parametrize("weight", [-1, MAX_WEIGHT_GRAMS + 1])
    def test_weight_out_of_range(self, engine: RegistrationEngine, weight: int) -> None:
        with pytest.raises(ValidationError, match="Weight"):
            engine.register("alice", _claim(weight_grams=weight))

    def test_negative_quantity(self, engine: RegistrationEngine) -> None:
        with pytest.raises(ValidationError, match="Quantity"):
            engine.register("alice", _claim(quantity=-1))

    @pytest.mark.parametrize("field,value", [
        ("weight_grams", 100.5),
        ("weight_grams", 100.0),
        ("weight_grams", True),
        ("purity_percentage", 99_990.0),
        ("purity_percentage", False),
        ("quantity", 1.5),
        ("quantity", True),
    ])
    def test_non_integer_quantities_rejected(
        self,
        engine: RegistrationEngine,
        registry: AssetRegistry,
        ledger: RewardLedger,
        field: str,
        value: object,
    ) -> None:
        with pytest.raises(ValidationError, match="must be an integer"):
            engine.register("alice", _claim(**{field: value}))
        assert registry.count == 0
        assert ledger.balance("alice") == 0

    def test_quote_rejects_float_weight(self, engine: RegistrationEngine) -> None:
        with pytest.raises(ValidationError, match="must be an integer"):
            engine.quote_fee("Gold", 100.5)

    def test_blank_submitter(self, engine: RegistrationEngine) -> None:
        with pytest.raises(ValidationError, match="Submitter"):
            engine.register("  ", _claim())

    def test_unsupported_type(
        self, engine: RegistrationEngine, registry: AssetRegistry,
    ) -> None:
        with pytest.raises(UnsupportedAssetTypeError):
            engine.register("alice", _claim(asset_type="Platinum"))
        assert registry.count == 0

    def test_images_checked_before_type(self, engine: RegistrationEngine) -> None:
        with pytest.raises(ValidationError):
            engine.register("alice", _claim(asset_type="Platinum", image_uris=()))


class TestPrepare:
    def test_prepare_does_not_mutate(
        self, engine: RegistrationEngine, registry: AssetRegistry, ledger: RewardLedger,
    ) -> None:
        plan = engine.prepare("alice", _claim())
        assert plan.asset.asset_id == 1
        assert registry.count == 0
        assert ledger.balance("alice") == 0

    def test_commit_applies_plan(
        self, engine: RegistrationEngine, registry: AssetRegistry, ledger: RewardLedger,
    ) -> None:
        plan = engine.prepare("alice", _claim())
        engine.commit(plan)
        assert registry.get(1) is plan.asset
        assert ledger.balance("alice") == plan.reward.amount

    def test_stale_plan_rejected_by_registry(self, engine: RegistrationEngine) -> None:
        plan = engine.prepare("alice", _claim())
        engine.register("bob", _claim())
        with pytest.raises(ValueError, match="out of sequence"):
            engine.commit(plan)


class TestQuoteFee:
    def test_quote_matches_registration(self, engine: RegistrationEngine) -> None:
        assert engine.quote_fee("Gold", 250) == 7
        assert engine.register("alice", _claim(weight_grams=250)).fee == 7

    def test_quote_rejects_bad_weight(self, engine: RegistrationEngine) -> None:
        with pytest.raises(ValidationError):
            engine.quote_fee("Gold", MAX_WEIGHT_GRAMS + 1)

    def test_rate_change_applies_to_next_registration(
        self, engine: RegistrationEngine,
    ) -> None:
        engine.set_rates(engine.rates.with_rate(RewardRateKind.GOLD_PER_GRAM, 3))
        assert engine.register("alice", _claim(weight_grams=155)).reward.amount == 4
