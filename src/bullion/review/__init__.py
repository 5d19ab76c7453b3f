"""Validator roster."""

from bullion.review.validator_set import NUM_VALIDATORS, ValidatorSet

__all__ = ["NUM_VALIDATORS", "ValidatorSet"]
