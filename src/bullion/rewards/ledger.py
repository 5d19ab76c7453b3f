"""Reward ledger — per-account balances of reward points.

Balances only grow. There is no debit operation: registration and
finalizing votes credit accounts, and nothing in the registry spends them.
Spending belongs to whatever token layer sits on top.
"""

from __future__ import annotations

from typing import Mapping, Optional


class RewardLedger:
    """In-memory ledger of reward-point balances.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.

    Usage:
        ledger = RewardLedger()
        ledger.credit("alice", 25)
        ledger.balance("alice")  # 25
    """

    def __init__(self, balances: Optional[Mapping[str, int]] = None) -> None:
        self._balances: dict[str, int] = {}
        for account_id, amount in (balances or {}).items():
            self.credit(account_id, int(amount))

    def credit(self, account_id: str, amount: int) -> int:
        """Add reward points to an account and return the new balance.

        Raises ValueError if amount is negative or account_id is blank.
        A zero credit is accepted and leaves the balance unchanged.
        """
        if not account_id.strip():
            raise ValueError("Cannot credit a blank account ID")
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        balance = self._balances.get(account_id, 0) + amount
        self._balances[account_id] = balance
        return balance

    def balance(self, account_id: str) -> int:
        """Current balance; unknown accounts hold zero."""
        return self._balances.get(account_id, 0)

    def accounts(self) -> list[str]:
        return list(self._balances)

    @property
    def total_issued(self) -> int:
        return sum(self._balances.values())

    def to_dict(self) -> dict[str, int]:
        return dict(self._balances)
