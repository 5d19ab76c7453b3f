"""Persistence — append-only event log and state snapshots."""

from bullion.persistence.event_log import EventKind, EventLog, EventRecord
from bullion.persistence.state_store import StateStore

__all__ = [
    "EventKind",
    "EventLog",
    "EventRecord",
    "StateStore",
]
