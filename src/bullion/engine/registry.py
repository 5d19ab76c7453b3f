"""Asset registry — owns every AssetRecord and allocates their IDs.

IDs are integers starting at 1 and strictly increasing. An ID is never
reused, and records are never deleted.
"""

from __future__ import annotations

from typing import Iterable, Optional

from bullion.errors import NotFoundError
from bullion.models.asset import AssetRecord, AssetStatus


class AssetRegistry:
    """In-memory arena of registered assets.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    def __init__(self) -> None:
        self._assets: dict[int, AssetRecord] = {}
        self._next_id = 1

    @classmethod
    def from_records(
        cls,
        assets: Iterable[AssetRecord],
        next_id: Optional[int] = None,
    ) -> AssetRegistry:
        """Restore a registry from persisted records."""
        registry = cls()
        for asset in assets:
            registry._assets[asset.asset_id] = asset
        highest = max(registry._assets, default=0)
        registry._next_id = max(next_id or 0, highest + 1)
        return registry

    def peek_next_id(self) -> int:
        """The ID the next added asset must carry."""
        return self._next_id

    def add(self, asset: AssetRecord) -> None:
        """Store a new asset under the next ID.

        Raises ValueError if the asset does not carry the next ID.
        """
        if asset.asset_id != self._next_id:
            raise ValueError(
                f"Asset ID {asset.asset_id} out of sequence (expected {self._next_id})"
            )
        self._assets[asset.asset_id] = asset
        self._next_id += 1

    def get(self, asset_id: int) -> AssetRecord:
        """Look up an asset. Raises NotFoundError if absent."""
        asset = self._assets.get(asset_id)
        if asset is None:
            raise NotFoundError(f"Asset not found: {asset_id}")
        return asset

    def find(self, asset_id: int) -> Optional[AssetRecord]:
        return self._assets.get(asset_id)

    def list_assets(
        self,
        status: Optional[AssetStatus] = None,
        creator_id: Optional[str] = None,
    ) -> list[AssetRecord]:
        """List assets in ID order, optionally filtered."""
        result = [self._assets[k] for k in sorted(self._assets)]
        if status is not None:
            result = [a for a in result if a.status == status]
        if creator_id is not None:
            result = [a for a in result if a.creator_id == creator_id]
        return result

    @property
    def count(self) -> int:
        return len(self._assets)
