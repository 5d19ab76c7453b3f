"""Reward subsystem — append-only reward-point balances."""

from bullion.rewards.ledger import RewardLedger

__all__ = ["RewardLedger"]
