"""Vote tally — the quorum state machine that certifies assets.

State machine:
    PENDING → TRUE    as soon as true_votes >= required_approvals
    PENDING → FALSE   once every seat has voted and approvals fell short
TRUE and FALSE are terminal.

The quorum is approval-weighted, not majority-weighted. Three approvals
finalize an asset as TRUE before the remaining validators vote; a FALSE
outcome waits until all NUM_VALIDATORS votes are in.

Resolution is evaluated once, immediately after the vote is recorded.
Changing required_approvals later does not re-resolve pending assets;
their next vote does.

Only the validator whose vote finalizes an asset is rewarded, with a flat
validator_reward. Earlier voters on the same asset receive nothing.

Vote checks, in order:
1. Caller is a validator.
2. Asset exists.
3. Asset is still PENDING.
4. Caller has not voted on this asset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from bullion.engine.registry import AssetRegistry
from bullion.errors import (
    AlreadyFinalizedError,
    DuplicateVoteError,
    NotAValidatorError,
    RangeError,
)
from bullion.models.asset import AssetRecord, AssetStatus, VoteRecord
from bullion.models.settlement import CreditReason, RewardCredit
from bullion.review.validator_set import ValidatorSet
from bullion.rewards.ledger import RewardLedger

logger = logging.getLogger(__name__)


DEFAULT_REQUIRED_APPROVALS = 3


@dataclass(frozen=True)
class VotePlan:
    """A validated vote and the tally it produces, ready to commit."""
    vote: VoteRecord
    true_votes: int
    false_votes: int
    previous_status: AssetStatus
    new_status: AssetStatus
    reward: Optional[RewardCredit] = None

    @property
    def asset_id(self) -> int:
        return self.vote.asset_id

    @property
    def finalized(self) -> bool:
        return self.new_status != self.previous_status


class VoteTally:
    """Accepts one vote per validator per asset and resolves finality.

    Usage:
        tally = VoteTally(validators, registry, ledger)
        plan = tally.cast_vote(asset_id, "val-1", True)
        if plan.finalized:
            ...
    """

    def __init__(
        self,
        validators: ValidatorSet,
        registry: AssetRegistry,
        ledger: RewardLedger,
        required_approvals: int = DEFAULT_REQUIRED_APPROVALS,
        validator_reward: int = 0,
    ) -> None:
        self._validators = validators
        self._registry = registry
        self._ledger = ledger
        self._votes: dict[int, dict[str, VoteRecord]] = {}  # asset_id → validator → vote
        self._required_approvals = self.check_required_approvals(required_approvals)
        if validator_reward < 0:
            raise ValueError(f"Validator reward must be non-negative, got {validator_reward}")
        self._validator_reward = validator_reward

    @classmethod
    def from_records(
        cls,
        validators: ValidatorSet,
        registry: AssetRegistry,
        ledger: RewardLedger,
        votes: Iterable[VoteRecord],
        required_approvals: int = DEFAULT_REQUIRED_APPROVALS,
        validator_reward: int = 0,
    ) -> VoteTally:
        """Restore a tally from persisted vote records."""
        tally = cls(validators, registry, ledger, required_approvals, validator_reward)
        for vote in votes:
            tally._votes.setdefault(vote.asset_id, {})[vote.validator_id] = vote
        return tally

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def num_validators(self) -> int:
        return self._validators.capacity

    @property
    def required_approvals(self) -> int:
        return self._required_approvals

    @property
    def validator_reward(self) -> int:
        return self._validator_reward

    def check_required_approvals(self, required: int) -> int:
        """Raises RangeError unless 1 <= required <= NUM_VALIDATORS."""
        if not (1 <= required <= self.num_validators):
            raise RangeError(
                f"Required approvals must be in [1, {self.num_validators}], got {required}"
            )
        return required

    def set_required_approvals(self, required: int) -> None:
        self._required_approvals = self.check_required_approvals(required)

    def set_validator_reward(self, reward: int) -> None:
        if reward < 0:
            raise ValueError(f"Validator reward must be non-negative, got {reward}")
        self._validator_reward = reward

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def prepare(
        self,
        asset_id: int,
        validator_id: str,
        vote: bool,
        now: Optional[datetime] = None,
    ) -> VotePlan:
        """Validate a vote and compute the resulting tally.

        Raises:
            NotAValidatorError: caller is not in the validator set.
            NotFoundError: unknown asset.
            AlreadyFinalizedError: asset status is terminal.
            DuplicateVoteError: caller already voted on this asset.
        """
        voter = validator_id.strip()
        if not self._validators.contains(voter):
            raise NotAValidatorError(f"{voter or validator_id!r} is not a validator")

        asset = self._registry.get(asset_id)
        if asset.status.is_terminal:
            raise AlreadyFinalizedError(
                f"Asset {asset_id} is already finalized as {asset.status.value}"
            )
        if voter in self._votes.get(asset_id, {}):
            raise DuplicateVoteError(f"Validator {voter} has already voted on asset {asset_id}")

        if now is None:
            now = datetime.now(timezone.utc)

        true_votes = asset.true_votes + (1 if vote else 0)
        false_votes = asset.false_votes + (0 if vote else 1)
        new_status = self._resolve(true_votes, false_votes)

        reward = None
        if new_status.is_terminal:
            reward = RewardCredit(
                account_id=voter,
                amount=self._validator_reward,
                reason=CreditReason.FINALIZING_VOTE,
                asset_id=asset_id,
                balance_after=self._ledger.balance(voter) + self._validator_reward,
            )

        return VotePlan(
            vote=VoteRecord(asset_id=asset_id, validator_id=voter, vote=vote, cast_utc=now),
            true_votes=true_votes,
            false_votes=false_votes,
            previous_status=asset.status,
            new_status=new_status,
            reward=reward,
        )

    def commit(self, plan: VotePlan) -> AssetRecord:
        """Apply a prepared plan: record the vote, update the tally, pay out."""
        asset = self._registry.get(plan.asset_id)
        self._votes.setdefault(plan.asset_id, {})[plan.vote.validator_id] = plan.vote
        asset.true_votes = plan.true_votes
        asset.false_votes = plan.false_votes
        logger.debug(
            "Validator %s voted %s on asset %d (%d for, %d against)",
            plan.vote.validator_id, plan.vote.vote, plan.asset_id,
            plan.true_votes, plan.false_votes,
        )

        if plan.finalized:
            asset.finalize(plan.new_status, plan.vote.cast_utc)
            if plan.reward is not None:
                self._ledger.credit(plan.reward.account_id, plan.reward.amount)
            logger.info(
                "Asset %d finalized as %s by %s (%d for, %d against)",
                plan.asset_id, plan.new_status.value, plan.vote.validator_id,
                plan.true_votes, plan.false_votes,
            )
        return asset

    def cast_vote(
        self,
        asset_id: int,
        validator_id: str,
        vote: bool,
        now: Optional[datetime] = None,
    ) -> VotePlan:
        """Prepare and commit in one step."""
        plan = self.prepare(asset_id, validator_id, vote, now=now)
        self.commit(plan)
        return plan

    def _resolve(self, true_votes: int, false_votes: int) -> AssetStatus:
        if true_votes >= self._required_approvals:
            return AssetStatus.TRUE
        if true_votes + false_votes == self.num_validators:
            return AssetStatus.FALSE
        return AssetStatus.PENDING

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def vote_of(self, asset_id: int, validator_id: str) -> Optional[VoteRecord]:
        return self._votes.get(asset_id, {}).get(validator_id.strip())

    def votes_on(self, asset_id: int) -> list[VoteRecord]:
        """Every vote recorded on an asset, including those of removed validators."""
        return sorted(
            self._votes.get(asset_id, {}).values(),
            key=lambda v: v.cast_utc,
        )

    def ballot(self, asset_id: int) -> list[tuple[str, Optional[bool]]]:
        """(validator, vote) for each current validator, in roster order.

        A validator who has not voted on the asset shows None.
        Raises NotFoundError for an unknown asset.
        """
        self._registry.get(asset_id)
        cast = self._votes.get(asset_id, {})
        return [
            (validator_id, cast[validator_id].vote if validator_id in cast else None)
            for validator_id in self._validators
        ]

    def pending_for(self, validator_id: str) -> list[AssetRecord]:
        """PENDING assets the validator has not voted on yet."""
        voter = validator_id.strip()
        return [
            asset for asset in self._registry.list_assets(status=AssetStatus.PENDING)
            if voter not in self._votes.get(asset.asset_id, {})
        ]

    def all_votes(self) -> list[VoteRecord]:
        return [
            vote
            for asset_id in sorted(self._votes)
            for vote in self._votes[asset_id].values()
        ]
