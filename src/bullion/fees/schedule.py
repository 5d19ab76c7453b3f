"""Fee schedule — minting fee lookup by asset type and quantity bucket.

The schedule is a pre-set table. Fees are never fetched from a price feed.
Buckets with no entry read as zero.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


class FeeSchedule:
    """(asset type, bucket) → fee in USD-scaled integer units.

    Usage:
        schedule = FeeSchedule({"Gold": {1: 6}})
        schedule.fee_for("Gold", 1)   # 6
        schedule.fee_for("Gold", 7)   # 0
    """

    def __init__(self, table: Optional[Mapping[str, Mapping[int, int]]] = None) -> None:
        self._table: dict[str, dict[int, int]] = {}
        for asset_type, buckets in (table or {}).items():
            for bucket, fee in buckets.items():
                self.set_fee(asset_type, int(bucket), int(fee))

    @classmethod
    def from_config(cls, data: Mapping[str, Mapping[str, Any]]) -> FeeSchedule:
        """Build from JSON-shaped config (bucket keys are strings)."""
        return cls({
            asset_type: {int(bucket): int(fee) for bucket, fee in buckets.items()}
            for asset_type, buckets in data.items()
        })

    def fee_for(self, asset_type: str, bucket: int) -> int:
        return self._table.get(asset_type, {}).get(bucket, 0)

    def set_fee(self, asset_type: str, bucket: int, fee: int) -> None:
        """Set one table entry.

        Raises ValueError on a blank asset type or a negative bucket/fee.
        """
        if not asset_type.strip():
            raise ValueError("Asset type must not be blank")
        if bucket < 0:
            raise ValueError(f"Bucket must be non-negative, got {bucket}")
        if fee < 0:
            raise ValueError(f"Fee must be non-negative, got {fee}")
        self._table.setdefault(asset_type, {})[bucket] = fee

    def asset_types(self) -> list[str]:
        return sorted(self._table)

    def buckets(self, asset_type: str) -> dict[int, int]:
        return dict(sorted(self._table.get(asset_type, {}).items()))

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            asset_type: {str(b): fee for b, fee in sorted(buckets.items())}
            for asset_type, buckets in sorted(self._table.items())
        }
