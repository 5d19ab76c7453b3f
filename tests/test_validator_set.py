"""Tests for the validator set — bounded roster with swap-remove."""

import pytest

from bullion.errors import CapacityError, NotPresentError, ValidationError
from bullion.review.validator_set import NUM_VALIDATORS, ValidatorSet


def _full_set() -> ValidatorSet:
    return ValidatorSet(members=[f"v{i}" for i in range(1, NUM_VALIDATORS + 1)])


class TestAdd:
    def test_add_and_contains(self) -> None:
        validators = ValidatorSet()
        validators.add("v1")
        assert validators.contains("v1")
        assert "v1" in validators
        assert len(validators) == 1

    def test_add_strips_whitespace(self) -> None:
        validators = ValidatorSet()
        validators.add("  v1 ")
        assert validators.members() == ["v1"]
        assert validators.contains("v1 ")

    def test_blank_rejected(self) -> None:
        with pytest.raises(ValidationError, match="blank"):
            ValidatorSet().add("   ")

    def test_duplicate_rejected(self) -> None:
        validators = ValidatorSet(members=["v1"])
        with pytest.raises(ValidationError, match="already a member"):
            validators.add("v1")
        assert len(validators) == 1

    def test_full_roster_rejects_sixth(self) -> None:
        validators = _full_set()
        assert validators.is_full
        with pytest.raises(CapacityError):
            validators.add("v6")
        assert len(validators) == NUM_VALIDATORS

    def test_check_add_does_not_mutate(self) -> None:
        validators = ValidatorSet()
        assert validators.check_add(" v1 ") == "v1"
        assert len(validators) == 0

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ValidatorSet(capacity=0)

    def test_non_string_not_contained(self) -> None:
        assert 1 not in ValidatorSet(members=["v1"])


class TestRemove:
    def test_remove_swaps_last_into_slot(self) -> None:
        validators = _full_set()
        validators.remove("v2")
        assert validators.members() == ["v1", "v5", "v3", "v4"]

    def test_remove_last_member(self) -> None:
        validators = _full_set()
        validators.remove("v5")
        assert validators.members() == ["v1", "v2", "v3", "v4"]

    def test_remove_only_member(self) -> None:
        validators = ValidatorSet(members=["v1"])
        validators.remove("v1")
        assert validators.members() == []

    def test_remove_absent_raises(self) -> None:
        validators = ValidatorSet(members=["v1"])
        with pytest.raises(NotPresentError):
            validators.remove("v9")
        assert validators.members() == ["v1"]

    def test_room_after_removal(self) -> None:
        validators = _full_set()
        validators.remove("v1")
        validators.add("v6")
        assert validators.members() == ["v5", "v2", "v3", "v4", "v6"]

    def test_iteration_is_snapshot(self) -> None:
        validators = ValidatorSet(members=["v1", "v2"])
        for member in validators:
            validators.remove(member)
        assert len(validators) == 0
