"""Append-only event log — the ordered record of every registry action.

Every state change produces one or more event records, appended in the
order they happened. Events are immutable once written. The log serves as:
1. The observer feed (registrations, votes, status changes, credits).
2. The audit trail for third-party verification.
3. The write-ahead record: events are appended before state is committed.

A StatusChanged event appears at most once per asset.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional


class EventKind(str, enum.Enum):
    """Classification of registry events."""
    ASSET_REGISTERED = "asset_registered"
    VOTE_CAST = "vote_cast"
    STATUS_CHANGED = "status_changed"
    REWARD_CREDITED = "reward_credited"
    # Administration
    VALIDATOR_ADDED = "validator_added"
    VALIDATOR_REMOVED = "validator_removed"
    REQUIRED_APPROVALS_CHANGED = "required_approvals_changed"
    FEE_SCHEDULE_UPDATED = "fee_schedule_updated"
    REWARD_RATE_UPDATED = "reward_rate_updated"
    ADMIN_TRANSFERRED = "admin_transferred"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event in the registry log.

    The event_hash is computed at creation time over the canonical JSON
    of every other field.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ts_str, actor_id, payload,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only event log with optional file persistence.

    Events can only be appended, never modified or deleted.
    The log can be persisted to a JSONL file (one JSON object per line)
    and loaded back for recovery.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        self.append_many([event])

    def append_many(self, events: Iterable[EventRecord]) -> None:
        """Append a batch of events caused by one operation.

        The batch is checked and written to disk as a unit before any of it
        becomes visible in memory. Raises ValueError on a duplicate event_id
        and OSError if the file write fails; in both cases nothing is
        appended.
        """
        batch = list(events)
        seen: set[str] = set()
        for event in batch:
            if event.event_id in self._event_ids or event.event_id in seen:
                raise ValueError(f"Duplicate event ID: {event.event_id}")
            seen.add(event.event_id)

        if self._storage_path:
            self._append_to_file(batch)

        for event in batch:
            self._events.append(event)
            self._event_ids.add(event.event_id)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_for_asset(
        self,
        asset_id: int,
        kind: Optional[EventKind] = None,
    ) -> list[EventRecord]:
        """Return events whose payload names the asset."""
        return [e for e in self.events(kind) if e.payload.get("asset_id") == asset_id]

    def events_since(
        self,
        since_utc: str,
        kind: Optional[EventKind] = None,
    ) -> list[EventRecord]:
        """Return events after a timestamp, optionally filtered by kind."""
        result = [e for e in self._events if e.timestamp_utc >= since_utc]
        if kind is not None:
            result = [e for e in result if e.event_kind == kind]
        return result

    @property
    def storage_path(self) -> Optional[Path]:
        return self._storage_path

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, events: list[EventRecord]) -> None:
        """Append events to the JSONL file in a single write."""
        lines = "".join(
            json.dumps(e.to_dict(), sort_keys=True, ensure_ascii=False) + "\n"
            for e in events
        )
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(lines)

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs (replay protection on recovery).
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                event_id = data["event_id"]
                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    data["event_id"],
                    data["event_kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=data["event_id"],
                    event_kind=EventKind(data["event_kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
