"""Core data models for the bullion registry."""

from bullion.models.asset import (
    AssetClaim,
    AssetRecord,
    AssetStatus,
    MetalType,
    VoteRecord,
)
from bullion.models.settlement import (
    CreditReason,
    RewardCredit,
    RewardRateKind,
    RewardRates,
)

__all__ = [
    "AssetClaim",
    "AssetRecord",
    "AssetStatus",
    "MetalType",
    "VoteRecord",
    "CreditReason",
    "RewardCredit",
    "RewardRateKind",
    "RewardRates",
]
