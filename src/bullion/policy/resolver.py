"""Policy resolver — loads registry parameters from the config directory.

Config lives in JSON, not code. The resolver reads
config/registry_params.json and hands out typed views of it:
validator roster parameters, reward rates, the fee schedule, the
troy-ounce conversion constant and the administrative identity.

Values read here are the starting point. Administrators can change the
roster, quorum, fees and rates at runtime through the service; those
changes are persisted in the state snapshot, not written back to config.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bullion.errors import ConfigError
from bullion.fees.engine import GRAMS_PER_TROY_OUNCE_SCALED
from bullion.fees.schedule import FeeSchedule
from bullion.models.asset import MetalType
from bullion.models.settlement import RewardRates
from bullion.review.validator_set import NUM_VALIDATORS


PARAMS_FILENAME = "registry_params.json"


@dataclass(frozen=True)
class ValidatorPolicy:
    """Roster parameters from config."""
    num_validators: int
    required_approvals: int
    initial: tuple[str, ...]


class PolicyResolver:
    """Typed access to registry configuration.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.validator_policy().required_approvals  # 3
        resolver.fee_schedule().fee_for("Gold", 1)
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load registry_params.json from a config directory.

        Raises ConfigError if the file is missing or is not valid JSON.
        """
        path = Path(config_dir) / PARAMS_FILENAME
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as handle:
                params = json.load(handle)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        return cls(params)

    @property
    def raw(self) -> dict[str, Any]:
        return self._params

    def validator_policy(self) -> ValidatorPolicy:
        section = self._section("validators")
        return ValidatorPolicy(
            num_validators=int(section.get("num_validators", NUM_VALIDATORS)),
            required_approvals=int(section.get("required_approvals", 3)),
            initial=tuple(section.get("initial", ())),
        )

    def grams_per_troy_ounce_scaled(self) -> int:
        section = self._params.get("conversion", {})
        return int(section.get("grams_per_troy_ounce_scaled", GRAMS_PER_TROY_OUNCE_SCALED))

    def reward_rates(self) -> RewardRates:
        section = self._section("rewards")
        try:
            return RewardRates(
                silver_reward_per_oz=int(section["silver_reward_per_oz"]),
                gold_reward_per_gram=int(section["gold_reward_per_gram"]),
                validator_reward=int(section["validator_reward"]),
            )
        except KeyError as e:
            raise ConfigError(f"Missing reward rate: {e.args[0]}") from e

    def fee_schedule(self) -> FeeSchedule:
        """A fresh FeeSchedule built from config."""
        try:
            return FeeSchedule.from_config(self._params.get("fee_schedule", {}))
        except ValueError as e:
            raise ConfigError(f"Invalid fee schedule: {e}") from e

    def admin_id(self) -> str:
        admin = self._section("administration").get("admin_id", "")
        if not str(admin).strip():
            raise ConfigError("administration.admin_id must not be blank")
        return str(admin).strip()

    def check_invariants(self) -> list[str]:
        """Return every configuration problem found. Empty means valid."""
        errors: list[str] = []

        validators = self._params.get("validators")
        if not isinstance(validators, dict):
            errors.append("Missing 'validators' section")
        else:
            size = validators.get("num_validators", NUM_VALIDATORS)
            required = validators.get("required_approvals", 3)
            initial = validators.get("initial", [])
            if not isinstance(size, int) or size < 1:
                errors.append(f"validators.num_validators must be a positive integer, got {size!r}")
            elif not isinstance(required, int) or not (1 <= required <= size):
                errors.append(
                    f"validators.required_approvals must be in [1, {size}], got {required!r}"
                )
            if not isinstance(initial, list):
                errors.append("validators.initial must be a list")
            else:
                stripped = [str(v).strip() for v in initial]
                if any(not v for v in stripped):
                    errors.append("validators.initial contains a blank ID")
                if len(set(stripped)) != len(stripped):
                    errors.append("validators.initial contains duplicates")
                if isinstance(size, int) and len(stripped) > size:
                    errors.append(
                        f"validators.initial has {len(stripped)} members, capacity is {size}"
                    )

        conversion = self._params.get("conversion", {})
        grams = conversion.get("grams_per_troy_ounce_scaled", GRAMS_PER_TROY_OUNCE_SCALED)
        if not isinstance(grams, int) or grams <= 0:
            errors.append(
                f"conversion.grams_per_troy_ounce_scaled must be a positive integer, got {grams!r}"
            )

        rewards = self._params.get("rewards")
        if not isinstance(rewards, dict):
            errors.append("Missing 'rewards' section")
        else:
            for key in ("silver_reward_per_oz", "gold_reward_per_gram", "validator_reward"):
                value = rewards.get(key)
                if not isinstance(value, int) or value < 0:
                    errors.append(f"rewards.{key} must be a non-negative integer, got {value!r}")

        schedule = self._params.get("fee_schedule", {})
        if not isinstance(schedule, dict):
            errors.append("fee_schedule must be an object")
        else:
            for metal in MetalType:
                if metal.value not in schedule:
                    errors.append(f"fee_schedule has no table for {metal.value}")
            for asset_type, buckets in schedule.items():
                if not isinstance(buckets, dict):
                    errors.append(f"fee_schedule.{asset_type} must be an object")
                    continue
                valid: list[tuple[int, int]] = []
                for bucket, fee in buckets.items():
                    if not str(bucket).isdigit():
                        errors.append(
                            f"fee_schedule.{asset_type} bucket {bucket!r} is not a non-negative integer"
                        )
                    elif not isinstance(fee, int) or fee < 0:
                        errors.append(
                            f"fee_schedule.{asset_type}[{bucket}] must be a non-negative integer, got {fee!r}"
                        )
                    else:
                        valid.append((int(bucket), fee))
                # Heavier buckets must not be cheaper
                valid.sort()
                for (b_low, f_low), (b_high, f_high) in zip(valid, valid[1:]):
                    if f_high < f_low:
                        errors.append(
                            f"fee_schedule.{asset_type}[{b_high}]={f_high} is below "
                            f"[{b_low}]={f_low}"
                        )

        admin = self._params.get("administration", {}).get("admin_id", "")
        if not str(admin).strip():
            errors.append("administration.admin_id must not be blank")

        return errors

    def validate(self) -> None:
        """Raise ConfigError listing every problem check_invariants() finds."""
        errors = self.check_invariants()
        if errors:
            raise ConfigError("; ".join(errors))

    def _section(self, name: str) -> dict[str, Any]:
        section = self._params.get(name)
        if not isinstance(section, dict):
            raise ConfigError(f"Missing '{name}' section in {PARAMS_FILENAME}")
        return section
