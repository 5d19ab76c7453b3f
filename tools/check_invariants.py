#!/usr/bin/env python3
"""Registry invariant checks against the shipped configuration."""

import sys
from pathlib import Path

from bullion.errors import ConfigError
from bullion.policy.resolver import PolicyResolver


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"


def check(config_dir: Path = CONFIG_DIR) -> int:
    try:
        resolver = PolicyResolver.from_config_dir(config_dir)
    except ConfigError as e:
        print(f"Invariant check failed:\n- {e}")
        return 1

    errors = resolver.check_invariants()
    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    config = Path(sys.argv[1]) if len(sys.argv) > 1 else CONFIG_DIR
    raise SystemExit(check(config))
