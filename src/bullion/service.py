"""Registry service — unified facade for the certification engine.

This is the primary interface for programmatic access to the registry.
It orchestrates all subsystems:
- Registration (validate, price, create, reward the submitter)
- Voting (one vote per validator per asset, quorum resolution)
- Administration (validator roster, quorum, fees, reward rates, admin)
- Persistence (event log, state snapshot)

Every public operation runs under a single lock, so each call observes a
fully settled prior state and quorum resolution is indivisible from the
vote that triggers it.

Mutations follow a three-step ordering so no failed call leaves a trace:
1. Prepare: validate and compute the outcome (nothing written yet).
2. Durable append of the outcome's events (if it fails, state is untouched).
3. Commit to memory (cannot fail), then snapshot to the StateStore.

Errors are raised to the caller unchanged.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Union

from bullion import __version__
from bullion.engine.registration import RegistrationEngine, RegistrationPlan
from bullion.engine.registry import AssetRegistry
from bullion.engine.vote_tally import VotePlan, VoteTally
from bullion.errors import AuthorizationError, StaleSnapshotError, ValidationError
from bullion.fees.engine import FeeEngine
from bullion.fees.schedule import FeeSchedule
from bullion.models.asset import AssetClaim, AssetRecord, AssetStatus, VoteRecord
from bullion.models.settlement import RewardCredit, RewardRateKind, RewardRates
from bullion.persistence.event_log import EventKind, EventLog, EventRecord
from bullion.persistence.state_store import StateStore
from bullion.policy.resolver import PolicyResolver
from bullion.review.validator_set import ValidatorSet
from bullion.rewards.ledger import RewardLedger

logger = logging.getLogger(__name__)


class RegistryService:
    """Unified certification engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = RegistryService(resolver)

        service.add_validator("admin", "val-1")
        asset_id = service.register_asset("alice", name="Bar", asset_type="Gold", ...)
        service.cast_vote(asset_id, "val-1", True)
        service.get_status(asset_id)

    Persistence (optional):
        service = RegistryService(resolver, event_log=log, state_store=store)
        # State is snapshotted on each mutation and loaded on construction.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        resolver.validate()
        self._resolver = resolver
        self._lock = threading.RLock()
        self._event_log = event_log if event_log is not None else EventLog()
        self._state_store = state_store
        self._fee_engine = FeeEngine(resolver.grams_per_troy_ounce_scaled())

        snapshot = state_store.load() if state_store is not None else None
        self._check_snapshot_current(snapshot)
        if snapshot is not None:
            self._restore(snapshot)
        else:
            policy = resolver.validator_policy()
            self._admin_id = resolver.admin_id()
            self._validators = ValidatorSet(policy.num_validators, policy.initial)
            self._registry = AssetRegistry()
            self._ledger = RewardLedger()
            self._schedule = resolver.fee_schedule()
            rates = resolver.reward_rates()
            self._registration = RegistrationEngine(
                self._registry, self._fee_engine, self._schedule, self._ledger, rates,
            )
            self._tally = VoteTally(
                self._validators, self._registry, self._ledger,
                required_approvals=policy.required_approvals,
                validator_reward=rates.validator_reward,
            )

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count

        # Set when a snapshot write fails after events were durably appended.
        # In-memory state stays correct; the StateStore is stale.
        self._persistence_degraded: bool = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_asset(
        self,
        submitter_id: str,
        *,
        name: str,
        asset_type: str,
        year: str,
        asset_country: str,
        creator_country: str,
        asset_name: str,
        weight_grams: int,
        purity_percentage: int,
        quantity: int,
        is_fungible: bool,
        image_uris: Sequence[str],
        now: Optional[datetime] = None,
    ) -> int:
        """Register a new asset claim and return its ID."""
        claim = AssetClaim(
            name=name,
            asset_type=asset_type,
            year=year,
            asset_country=asset_country,
            creator_country=creator_country,
            asset_name=asset_name,
            weight_grams=weight_grams,
            purity_percentage=purity_percentage,
            quantity=quantity,
            is_fungible=is_fungible,
            image_uris=tuple(image_uris),
        )
        with self._lock:
            now = now or datetime.now(timezone.utc)
            plan = self._registration.prepare(submitter_id, claim, now=now)
            events = self._registration_events(plan, now)
            self._commit(events, lambda: self._registration.commit(plan))
            return plan.asset.asset_id

    def quote_fee(self, asset_type: str, weight_grams: int) -> int:
        """Minting fee the current schedule would charge."""
        with self._lock:
            return self._registration.quote_fee(asset_type, weight_grams)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def cast_vote(
        self,
        asset_id: int,
        voter_id: str,
        vote: bool,
        now: Optional[datetime] = None,
    ) -> None:
        """Cast a validator's vote on an asset."""
        with self._lock:
            now = now or datetime.now(timezone.utc)
            plan = self._tally.prepare(asset_id, voter_id, vote, now=now)
            events = self._vote_events(plan, now)
            self._commit(events, lambda: self._tally.commit(plan))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_asset(self, asset_id: int) -> AssetRecord:
        """Return a copy of an asset. Raises NotFoundError if absent."""
        with self._lock:
            asset = self._registry.get(asset_id)
            return replace(asset, image_uris=list(asset.image_uris))

    def get_status(self, asset_id: int) -> AssetStatus:
        with self._lock:
            return self._registry.get(asset_id).status

    def get_votes(self, asset_id: int) -> list[tuple[str, Optional[bool]]]:
        """(validator, vote) for each current validator; None if not yet voted."""
        with self._lock:
            return self._tally.ballot(asset_id)

    def get_vote_records(self, asset_id: int) -> list[VoteRecord]:
        """Every vote recorded on an asset, including removed validators'."""
        with self._lock:
            self._registry.get(asset_id)
            return self._tally.votes_on(asset_id)

    def get_balance(self, account_id: str) -> int:
        with self._lock:
            return self._ledger.balance(account_id)

    def list_assets(
        self,
        status: Optional[AssetStatus] = None,
        creator_id: Optional[str] = None,
    ) -> list[AssetRecord]:
        with self._lock:
            return [
                replace(a, image_uris=list(a.image_uris))
                for a in self._registry.list_assets(status=status, creator_id=creator_id)
            ]

    def pending_for(self, validator_id: str) -> list[AssetRecord]:
        """Pending assets still awaiting this validator's vote."""
        with self._lock:
            return [
                replace(a, image_uris=list(a.image_uris))
                for a in self._tally.pending_for(validator_id)
            ]

    def validators(self) -> list[str]:
        with self._lock:
            return self._validators.members()

    @property
    def admin_id(self) -> str:
        return self._admin_id

    @property
    def required_approvals(self) -> int:
        return self._tally.required_approvals

    @property
    def num_validators(self) -> int:
        return self._validators.capacity

    @property
    def reward_rates(self) -> RewardRates:
        return self._registration.rates

    def fee_table(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return self._schedule.to_dict()

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        with self._lock:
            return self._event_log.events(kind)

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        with self._lock:
            by_status = {s.value: 0 for s in AssetStatus}
            for asset in self._registry.list_assets():
                by_status[asset.status.value] += 1
            return {
                "version": __version__,
                "admin_id": self._admin_id,
                "assets": {
                    "total": self._registry.count,
                    "by_status": by_status,
                },
                "validators": {
                    "members": self._validators.members(),
                    "capacity": self._validators.capacity,
                    "required_approvals": self._tally.required_approvals,
                },
                "rewards": {
                    "accounts": len(self._ledger.accounts()),
                    "total_issued": self._ledger.total_issued,
                    "rates": self._registration.rates.to_dict(),
                },
                "events": self._event_log.count,
                "persistence_degraded": self._persistence_degraded,
            }

    # ------------------------------------------------------------------
    # Administration (admin identity only)
    # ------------------------------------------------------------------

    def add_validator(self, caller_id: str, validator_id: str) -> None:
        with self._lock:
            self._require_admin(caller_id)
            canonical = self._validators.check_add(validator_id)
            event = self._make_event(
                EventKind.VALIDATOR_ADDED, caller_id, {"validator_id": canonical},
            )
            self._commit([event], lambda: self._validators.add(canonical))
            logger.info("Validator %s added by %s", canonical, caller_id)

    def remove_validator(self, caller_id: str, validator_id: str) -> None:
        with self._lock:
            self._require_admin(caller_id)
            self._validators.check_remove(validator_id)
            canonical = validator_id.strip()
            event = self._make_event(
                EventKind.VALIDATOR_REMOVED, caller_id, {"validator_id": canonical},
            )
            self._commit([event], lambda: self._validators.remove(canonical))
            logger.info("Validator %s removed by %s", canonical, caller_id)

    def set_required_approvals(self, caller_id: str, required: int) -> None:
        with self._lock:
            self._require_admin(caller_id)
            self._tally.check_required_approvals(required)
            previous = self._tally.required_approvals
            event = self._make_event(
                EventKind.REQUIRED_APPROVALS_CHANGED, caller_id,
                {"previous": previous, "required_approvals": required},
            )
            self._commit([event], lambda: self._tally.set_required_approvals(required))
            logger.info("Required approvals changed %d -> %d", previous, required)

    def set_fee(self, caller_id: str, asset_type: str, bucket: int, fee: int) -> None:
        with self._lock:
            self._require_admin(caller_id)
            canonical = asset_type.strip()
            if not canonical:
                raise ValidationError("Asset type must not be blank")
            if bucket < 0:
                raise ValidationError(f"Bucket must be non-negative, got {bucket}")
            if fee < 0:
                raise ValidationError(f"Fee must be non-negative, got {fee}")
            previous = self._schedule.fee_for(canonical, bucket)
            event = self._make_event(
                EventKind.FEE_SCHEDULE_UPDATED, caller_id,
                {"asset_type": canonical, "bucket": bucket, "previous": previous, "fee": fee},
            )
            self._commit([event], lambda: self._schedule.set_fee(canonical, bucket, fee))
            logger.info("Fee for %s bucket %d set to %d", canonical, bucket, fee)

    def set_reward_rate(
        self,
        caller_id: str,
        kind: Union[RewardRateKind, str],
        value: int,
    ) -> None:
        with self._lock:
            self._require_admin(caller_id)
            try:
                kind = RewardRateKind(kind)
                rates = self._registration.rates.with_rate(kind, value)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            previous = self._registration.rates.rate_for(kind)
            event = self._make_event(
                EventKind.REWARD_RATE_UPDATED, caller_id,
                {"rate": kind.value, "previous": previous, "value": value},
            )

            def _apply() -> None:
                self._registration.set_rates(rates)
                self._tally.set_validator_reward(rates.validator_reward)

            self._commit([event], _apply)
            logger.info("Reward rate %s changed %d -> %d", kind.value, previous, value)

    def transfer_admin(self, caller_id: str, new_admin_id: str) -> None:
        with self._lock:
            self._require_admin(caller_id)
            canonical = new_admin_id.strip()
            if not canonical:
                raise ValidationError("New admin ID must not be blank")
            event = self._make_event(
                EventKind.ADMIN_TRANSFERRED, caller_id,
                {"previous": self._admin_id, "admin_id": canonical},
            )

            def _apply() -> None:
                self._admin_id = canonical

            self._commit([event], _apply)
            logger.info("Administration transferred to %s", canonical)

    def _require_admin(self, caller_id: str) -> None:
        if caller_id.strip() != self._admin_id:
            raise AuthorizationError(f"{caller_id!r} is not the registry administrator")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _make_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: Optional[datetime] = None,
    ) -> EventRecord:
        return EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor_id.strip(),
            payload=payload,
            timestamp_utc=now,
        )

    def _credit_event(self, credit: RewardCredit, now: datetime) -> EventRecord:
        return self._make_event(
            EventKind.REWARD_CREDITED, credit.account_id,
            {
                "asset_id": credit.asset_id,
                "account_id": credit.account_id,
                "amount": credit.amount,
                "reason": credit.reason.value,
                "balance": credit.balance_after,
            },
            now,
        )

    def _registration_events(
        self, plan: RegistrationPlan, now: datetime,
    ) -> list[EventRecord]:
        asset = plan.asset
        return [
            self._make_event(
                EventKind.ASSET_REGISTERED, asset.creator_id,
                {
                    "asset_id": asset.asset_id,
                    "creator_id": asset.creator_id,
                    "asset_type": asset.asset_type,
                    "weight_grams": asset.weight_grams,
                    "purity_percentage": asset.purity_percentage,
                    "quantity": asset.quantity,
                    "fee": plan.fee,
                },
                now,
            ),
            self._credit_event(plan.reward, now),
        ]

    def _vote_events(self, plan: VotePlan, now: datetime) -> list[EventRecord]:
        voter = plan.vote.validator_id
        events = [
            self._make_event(
                EventKind.VOTE_CAST, voter,
                {
                    "asset_id": plan.asset_id,
                    "validator_id": voter,
                    "vote": plan.vote.vote,
                    "true_votes": plan.true_votes,
                    "false_votes": plan.false_votes,
                },
                now,
            ),
        ]
        if plan.finalized:
            events.append(self._make_event(
                EventKind.STATUS_CHANGED, voter,
                {
                    "asset_id": plan.asset_id,
                    "from": plan.previous_status.value,
                    "to": plan.new_status.value,
                },
                now,
            ))
            if plan.reward is not None:
                events.append(self._credit_event(plan.reward, now))
        return events

    def _commit(self, events: list[EventRecord], apply: Callable[[], Any]) -> None:
        """Append events, then apply the in-memory change, then snapshot.

        If the append fails, the event counter is rewound and the error
        propagates with state untouched.
        """
        try:
            self._event_log.append_many(events)
        except (ValueError, OSError):
            self._event_counter -= len(events)
            raise
        apply()
        self._persist_post_audit()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist_post_audit(self) -> None:
        """Snapshot state after events have been committed.

        MUST NOT roll back in-memory state — the event log is already
        durable. On failure the service is flagged degraded and the
        StateStore stays stale until the next successful write.
        """
        if self._state_store is None:
            return
        try:
            self._state_store.save(self._snapshot())
            self._persistence_degraded = False
        except OSError as e:
            self._persistence_degraded = True
            logger.warning(
                "Persistence degraded: %s — state committed in event log but "
                "snapshot at %s is stale", e, self._state_store.storage_path,
            )

    def _check_snapshot_current(self, snapshot: Optional[dict[str, Any]]) -> None:
        """Refuse to start from a snapshot that lags the durable event log.

        A snapshot records how many events it covers. If the log holds a
        different number, a snapshot write failed (or the process stopped
        between append and snapshot) and starting anyway would reissue
        asset IDs and drop credits. An in-memory log carries no history
        to compare against.
        """
        if self._event_log.storage_path is None:
            return
        covered = snapshot.get("event_count") if snapshot is not None else 0
        if self._event_log.count != covered:
            raise StaleSnapshotError(
                f"State snapshot covers {covered} events but the event log at "
                f"{self._event_log.storage_path} holds {self._event_log.count}"
            )

    def _snapshot(self) -> dict[str, Any]:
        return {
            "event_count": self._event_log.count,
            "admin_id": self._admin_id,
            "required_approvals": self._tally.required_approvals,
            "validator_capacity": self._validators.capacity,
            "validators": self._validators.members(),
            "reward_rates": self._registration.rates.to_dict(),
            "fee_schedule": self._schedule.to_dict(),
            "next_asset_id": self._registry.peek_next_id(),
            "assets": [a.to_dict() for a in self._registry.list_assets()],
            "votes": [v.to_dict() for v in self._tally.all_votes()],
            "balances": self._ledger.to_dict(),
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self._admin_id = snapshot["admin_id"]
        self._validators = ValidatorSet(
            snapshot["validator_capacity"], snapshot["validators"],
        )
        self._registry = AssetRegistry.from_records(
            (AssetRecord.from_dict(a) for a in snapshot["assets"]),
            next_id=snapshot.get("next_asset_id"),
        )
        self._ledger = RewardLedger(snapshot["balances"])
        self._schedule = FeeSchedule.from_config(snapshot["fee_schedule"])
        rates = RewardRates(**snapshot["reward_rates"])
        self._registration = RegistrationEngine(
            self._registry, self._fee_engine, self._schedule, self._ledger, rates,
        )
        self._tally = VoteTally.from_records(
            self._validators, self._registry, self._ledger,
            (VoteRecord.from_dict(v) for v in snapshot["votes"]),
            required_approvals=snapshot["required_approvals"],
            validator_reward=rates.validator_reward,
        )
        logger.info(
            "Restored registry snapshot: %d assets, %d validators",
            self._registry.count, len(self._validators),
        )
