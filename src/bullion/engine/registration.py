"""Registration engine — accepts new asset claims.

A registration either commits fully or fails before anything changes:
prepare() validates the claim and computes the fee, the new record and
the submitter's reward without mutating anything; commit() applies the
plan and cannot fail on a plan prepared against the current state.

Validation order:
1. At least MIN_IMAGE_URIS image URIs.
2. Purity, weight and quantity are plain integers (floats and bools are
   rejected); purity within [0, MAX_PURITY_PERCENTAGE], weight within
   [0, MAX_WEIGHT_GRAMS], quantity non-negative.
3. Asset type has a fee bucketing rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from bullion.engine.registry import AssetRegistry
from bullion.errors import ValidationError
from bullion.fees.engine import FeeEngine
from bullion.fees.schedule import FeeSchedule
from bullion.models.asset import (
    MAX_PURITY_PERCENTAGE,
    MAX_WEIGHT_GRAMS,
    MIN_IMAGE_URIS,
    AssetClaim,
    AssetRecord,
)
from bullion.models.settlement import CreditReason, RewardCredit, RewardRates
from bullion.rewards.ledger import RewardLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationPlan:
    """A validated registration, ready to commit."""
    asset: AssetRecord
    fee: int
    reward: RewardCredit


class RegistrationEngine:
    """Validates claims, prices them, and creates asset records.

    Usage:
        engine = RegistrationEngine(registry, FeeEngine(), schedule, ledger, rates)
        plan = engine.register("alice", claim)
        plan.asset.asset_id  # 1
    """

    def __init__(
        self,
        registry: AssetRegistry,
        fee_engine: FeeEngine,
        schedule: FeeSchedule,
        ledger: RewardLedger,
        rates: RewardRates,
    ) -> None:
        self._registry = registry
        self._fee_engine = fee_engine
        self._schedule = schedule
        self._ledger = ledger
        self._rates = rates

    @property
    def rates(self) -> RewardRates:
        return self._rates

    def set_rates(self, rates: RewardRates) -> None:
        self._rates = rates

    def quote_fee(self, asset_type: str, weight_grams: int) -> int:
        """Minting fee for a weight, without registering anything."""
        self._check_weight(weight_grams)
        return self._fee_engine.compute_fee(asset_type, weight_grams, self._schedule)

    def prepare(
        self,
        submitter_id: str,
        claim: AssetClaim,
        now: Optional[datetime] = None,
    ) -> RegistrationPlan:
        """Validate a claim and compute its registration plan.

        Raises:
            ValidationError: blank submitter, too few images, or
                out-of-range weight/purity/quantity.
            UnsupportedAssetTypeError: no fee rule for the asset type.
        """
        submitter = submitter_id.strip()
        if not submitter:
            raise ValidationError("Submitter ID must not be blank")

        if len(claim.image_uris) < MIN_IMAGE_URIS:
            raise ValidationError(
                f"At least {MIN_IMAGE_URIS} image URIs are required, "
                f"got {len(claim.image_uris)}"
            )
        _check_integer("Purity", claim.purity_percentage)
        if not (0 <= claim.purity_percentage <= MAX_PURITY_PERCENTAGE):
            raise ValidationError(
                f"Purity must be in [0, {MAX_PURITY_PERCENTAGE}], "
                f"got {claim.purity_percentage}"
            )
        self._check_weight(claim.weight_grams)
        _check_integer("Quantity", claim.quantity)
        if claim.quantity < 0:
            raise ValidationError(f"Quantity must be non-negative, got {claim.quantity}")

        fee = self._fee_engine.compute_fee(
            claim.asset_type, claim.weight_grams, self._schedule,
        )
        reward_amount = self._fee_engine.compute_registration_reward(
            claim.asset_type, claim.weight_grams, self._rates,
        )

        if now is None:
            now = datetime.now(timezone.utc)

        asset_id = self._registry.peek_next_id()
        asset = AssetRecord(
            asset_id=asset_id,
            creator_id=submitter,
            name=claim.name,
            asset_type=claim.asset_type,
            year=claim.year,
            asset_country=claim.asset_country,
            creator_country=claim.creator_country,
            asset_name=claim.asset_name,
            weight_grams=claim.weight_grams,
            purity_percentage=claim.purity_percentage,
            quantity=claim.quantity,
            is_fungible=claim.is_fungible,
            image_uris=list(claim.image_uris),
            fee=fee,
            registered_utc=now,
        )
        reward = RewardCredit(
            account_id=submitter,
            amount=reward_amount,
            reason=CreditReason.REGISTRATION,
            asset_id=asset_id,
            balance_after=self._ledger.balance(submitter) + reward_amount,
        )
        return RegistrationPlan(asset=asset, fee=fee, reward=reward)

    def commit(self, plan: RegistrationPlan) -> AssetRecord:
        """Apply a prepared plan: store the record and credit the submitter."""
        self._registry.add(plan.asset)
        self._ledger.credit(plan.reward.account_id, plan.reward.amount)
        logger.info(
            "Registered asset %d (%s, %d weight units) for %s: fee=%d reward=%d",
            plan.asset.asset_id, plan.asset.asset_type, plan.asset.weight_grams,
            plan.asset.creator_id, plan.fee, plan.reward.amount,
        )
        return plan.asset

    def register(
        self,
        submitter_id: str,
        claim: AssetClaim,
        now: Optional[datetime] = None,
    ) -> RegistrationPlan:
        """Prepare and commit in one step."""
        plan = self.prepare(submitter_id, claim, now=now)
        self.commit(plan)
        return plan

    @staticmethod
    def _check_weight(weight_grams: int) -> None:
        _check_integer("Weight", weight_grams)
        if not (0 <= weight_grams <= MAX_WEIGHT_GRAMS):
            raise ValidationError(
                f"Weight must be in [0, {MAX_WEIGHT_GRAMS}], got {weight_grams}"
            )


def _check_integer(field_name: str, value: object) -> None:
    # bool is an int subclass but never a valid fixed-point quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}")
