"""Fee subsystem — fee schedule and fixed-point fee/reward engine."""

from bullion.fees.engine import FeeEngine
from bullion.fees.schedule import FeeSchedule

__all__ = [
    "FeeEngine",
    "FeeSchedule",
]
