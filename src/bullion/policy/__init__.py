"""Configuration loading."""

from bullion.policy.resolver import PolicyResolver, ValidatorPolicy

__all__ = ["PolicyResolver", "ValidatorPolicy"]
