"""Asset models — certified claims, their embedded tally, and votes.

All physical quantities are fixed-point integers. No floats in the ledger:
- weight_grams is grams × 100 (two implied decimals).
- purity_percentage is percent × 1000 (three implied decimals).

Invariants enforced by these models:
- An asset's status leaves PENDING at most once and never reverses.
- A vote record is immutable once cast.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


WEIGHT_SCALE = 100
PURITY_SCALE = 1000
MAX_WEIGHT_GRAMS = 10_000_000   # 100,000.00 g
MAX_PURITY_PERCENTAGE = 100_000  # 100.000 %
MIN_IMAGE_URIS = 2


class MetalType(str, enum.Enum):
    """Asset types with a known fee bucketing rule."""
    SILVER = "Silver"
    GOLD = "Gold"


class AssetStatus(str, enum.Enum):
    """Certification state of an asset.

    State machine:
        PENDING → TRUE
        PENDING → FALSE
    TRUE and FALSE are terminal.
    """
    PENDING = "pending"
    TRUE = "true"
    FALSE = "false"

    @property
    def is_terminal(self) -> bool:
        return self is not AssetStatus.PENDING


@dataclass
class AssetRecord:
    """A registered claim about a physical asset.

    Mutable — the vote counters and status are updated by the vote tally
    until the status becomes terminal. Everything else is fixed at
    registration.
    """
    asset_id: int
    creator_id: str
    name: str
    asset_type: str
    year: str
    asset_country: str
    creator_country: str
    asset_name: str
    weight_grams: int
    purity_percentage: int
    quantity: int
    is_fungible: bool
    image_uris: list[str]
    fee: int = 0
    true_votes: int = 0
    false_votes: int = 0
    status: AssetStatus = AssetStatus.PENDING
    registered_utc: Optional[datetime] = None
    finalized_utc: Optional[datetime] = None

    @property
    def total_votes(self) -> int:
        return self.true_votes + self.false_votes

    @property
    def canonical_image_uri(self) -> str:
        return self.image_uris[0]

    @property
    def weight_grams_exact(self) -> Decimal:
        """Weight in grams as an exact decimal."""
        return Decimal(self.weight_grams) / Decimal(WEIGHT_SCALE)

    @property
    def purity_percentage_exact(self) -> Decimal:
        """Purity in percent as an exact decimal."""
        return Decimal(self.purity_percentage) / Decimal(PURITY_SCALE)

    def finalize(self, status: AssetStatus, now: datetime) -> None:
        """Move out of PENDING. Any other transition is rejected."""
        if self.status.is_terminal:
            raise ValueError(
                f"Asset {self.asset_id} already finalized as {self.status.value}"
            )
        if not status.is_terminal:
            raise ValueError(f"Cannot finalize asset {self.asset_id} as {status.value}")
        self.status = status
        self.finalized_utc = now

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "creator_id": self.creator_id,
            "name": self.name,
            "asset_type": self.asset_type,
            "year": self.year,
            "asset_country": self.asset_country,
            "creator_country": self.creator_country,
            "asset_name": self.asset_name,
            "weight_grams": self.weight_grams,
            "purity_percentage": self.purity_percentage,
            "quantity": self.quantity,
            "is_fungible": self.is_fungible,
            "image_uris": list(self.image_uris),
            "fee": self.fee,
            "true_votes": self.true_votes,
            "false_votes": self.false_votes,
            "status": self.status.value,
            "registered_utc": self.registered_utc.isoformat() if self.registered_utc else None,
            "finalized_utc": self.finalized_utc.isoformat() if self.finalized_utc else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetRecord:
        return cls(
            asset_id=int(data["asset_id"]),
            creator_id=data["creator_id"],
            name=data["name"],
            asset_type=data["asset_type"],
            year=data["year"],
            asset_country=data["asset_country"],
            creator_country=data["creator_country"],
            asset_name=data["asset_name"],
            weight_grams=int(data["weight_grams"]),
            purity_percentage=int(data["purity_percentage"]),
            quantity=int(data["quantity"]),
            is_fungible=bool(data["is_fungible"]),
            image_uris=list(data["image_uris"]),
            fee=int(data.get("fee", 0)),
            true_votes=int(data.get("true_votes", 0)),
            false_votes=int(data.get("false_votes", 0)),
            status=AssetStatus(data.get("status", AssetStatus.PENDING.value)),
            registered_utc=datetime.fromisoformat(data["registered_utc"]) if data.get("registered_utc") else None,
            finalized_utc=datetime.fromisoformat(data["finalized_utc"]) if data.get("finalized_utc") else None,
        )


@dataclass(frozen=True)
class VoteRecord:
    """A single validator's vote on an asset.

    Frozen — a vote is write-once and is never overwritten.
    """
    asset_id: int
    validator_id: str
    vote: bool
    cast_utc: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "validator_id": self.validator_id,
            "vote": self.vote,
            "cast_utc": self.cast_utc.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VoteRecord:
        return cls(
            asset_id=int(data["asset_id"]),
            validator_id=data["validator_id"],
            vote=bool(data["vote"]),
            cast_utc=datetime.fromisoformat(data["cast_utc"]),
        )


@dataclass(frozen=True)
class AssetClaim:
    """Submitter-supplied fields for a new registration.

    Validation happens in the registration engine, not here.
    """
    name: str
    asset_type: str
    year: str
    asset_country: str
    creator_country: str
    asset_name: str
    weight_grams: int
    purity_percentage: int
    quantity: int
    is_fungible: bool
    image_uris: tuple[str, ...] = field(default_factory=tuple)
