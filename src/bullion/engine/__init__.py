"""Certification engine — asset registry, registration, and vote tally."""

from bullion.engine.registration import RegistrationEngine, RegistrationPlan
from bullion.engine.registry import AssetRegistry
from bullion.engine.vote_tally import VotePlan, VoteTally

__all__ = [
    "AssetRegistry",
    "RegistrationEngine",
    "RegistrationPlan",
    "VotePlan",
    "VoteTally",
]
