"""Error taxonomy for the registry.

Every error is raised before any state is touched, so a failed call is a
no-op. Errors are surfaced to the caller unchanged; nothing here is
retried internally.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for all registry failures."""


class ValidationError(RegistryError, ValueError):
    """Malformed or out-of-range input (too few images, overflowing weight)."""


class UnsupportedAssetTypeError(RegistryError):
    """No fee bucketing rule exists for the asset type."""


class NotFoundError(RegistryError):
    """Unknown asset id."""


class NotAValidatorError(RegistryError):
    """Caller is not in the validator set."""


class DuplicateVoteError(RegistryError):
    """Validator already voted on this asset."""


class AlreadyFinalizedError(RegistryError):
    """Asset status is terminal; no further votes are accepted."""


class CapacityError(RegistryError):
    """Validator roster is full."""


class NotPresentError(RegistryError):
    """Validator to remove is not in the roster."""


class AuthorizationError(RegistryError):
    """Non-privileged caller invoked an administrative operation."""


class RangeError(RegistryError, ValueError):
    """Required approvals outside [1, NUM_VALIDATORS]."""


class ConfigError(RegistryError, ValueError):
    """Configuration file is missing or inconsistent."""


class StaleSnapshotError(RegistryError, ValueError):
    """State snapshot does not cover every event in the durable log."""
