"""Validator set — the fixed-capacity committee that certifies claims.

The set is small (NUM_VALIDATORS, five by default), so membership is a
linear scan over an ordered list. Removal swaps the last member into the
removed slot; order is not preserved across removals.

Votes already cast by a removed validator stay counted on their assets.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from bullion.errors import CapacityError, NotPresentError, ValidationError


NUM_VALIDATORS = 5


class ValidatorSet:
    """Bounded, ordered roster of validator identities.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    def __init__(
        self,
        capacity: int = NUM_VALIDATORS,
        members: Optional[Iterable[str]] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Validator capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._members: list[str] = []
        for validator_id in members or ():
            self.add(validator_id)

    def check_add(self, validator_id: str) -> str:
        """Validate an addition without applying it. Returns the canonical ID.

        Raises:
            ValidationError: blank ID or already a member.
            CapacityError: roster is full.
        """
        canonical = validator_id.strip()
        if not canonical:
            raise ValidationError("Validator ID must not be blank")
        if len(self._members) >= self._capacity:
            raise CapacityError(
                f"Validator set is full ({self._capacity} members)"
            )
        if canonical in self._members:
            raise ValidationError(f"Validator {canonical} is already a member")
        return canonical

    def add(self, validator_id: str) -> None:
        self._members.append(self.check_add(validator_id))

    def check_remove(self, validator_id: str) -> int:
        """Validate a removal without applying it. Returns the member's slot.

        Raises NotPresentError if the identity is not a member.
        """
        canonical = validator_id.strip()
        for index, member in enumerate(self._members):
            if member == canonical:
                return index
        raise NotPresentError(f"Validator {canonical} is not a member")

    def remove(self, validator_id: str) -> None:
        index = self.check_remove(validator_id)
        last = self._members.pop()
        if index < len(self._members):
            self._members[index] = last

    def contains(self, validator_id: str) -> bool:
        return validator_id.strip() in self._members

    def __contains__(self, validator_id: object) -> bool:
        return isinstance(validator_id, str) and self.contains(validator_id)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._members))

    def __len__(self) -> int:
        return len(self._members)

    def members(self) -> list[str]:
        return list(self._members)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return len(self._members) >= self._capacity
