"""State store — JSON snapshot of the registry for restart recovery.

The event log is authoritative; the snapshot is a fast-start cache of the
state the log describes. It is rewritten after every committed operation
via a temp file and an atomic rename, so a crash mid-write leaves the
previous snapshot intact.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional


SNAPSHOT_VERSION = 1


class StateStore:
    """Reads and writes the registry snapshot.

    Snapshot layout:
        {
          "version": 1,
          "event_count": int,
          "admin_id": str,
          "required_approvals": int,
          "validator_capacity": int,
          "validators": [str, ...],
          "reward_rates": {...},
          "fee_schedule": {type: {bucket: fee}},
          "next_asset_id": int,
          "assets": [{...}, ...],
          "votes": [{...}, ...],
          "balances": {account: int}
        }
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def exists(self) -> bool:
        return self._storage_path.exists()

    def load(self) -> Optional[dict[str, Any]]:
        """Return the stored snapshot, or None if nothing has been saved.

        Raises ValueError on an unknown snapshot version.
        """
        if not self._storage_path.exists():
            return None
        with self._storage_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(
                f"Unsupported snapshot version {version!r} in {self._storage_path}"
            )
        return data

    def save(self, snapshot: dict[str, Any]) -> None:
        """Write a snapshot atomically. Raises OSError on write failure."""
        data = dict(snapshot)
        data["version"] = SNAPSHOT_VERSION
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, self._storage_path)
