"""Append-only event log — the audit trail of an election.

EventLog is the default EventSink for the engine. Every committed domain
event becomes an immutable EventRecord whose hash is computed at creation
time. The hashes feed the Merkle root of the audit commitment.

The log records what happened; it does not store election state and is
not used to restore an engine.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ballotbox.models.events import (
    DomainEvent,
    ProposalRegistered,
    Voted,
    VoterRegistered,
    WorkflowStatusChange,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class EventKind(str, enum.Enum):
    """Classification of election events."""
    VOTER_REGISTERED = "voter_registered"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"
    PROPOSAL_REGISTERED = "proposal_registered"
    VOTED = "voted"


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
    """A single immutable event in the election log."""
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str  # SHA-256 of canonical JSON

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


def describe_event(event: DomainEvent) -> tuple[EventKind, str, dict[str, Any]]:
    """Map a domain event to (kind, actor_id, payload)."""
    if isinstance(event, VoterRegistered):
        return EventKind.VOTER_REGISTERED, event.voter_id, {"voter_id": event.voter_id}
    if isinstance(event, WorkflowStatusChange):
        return EventKind.WORKFLOW_STATUS_CHANGE, SYSTEM_ACTOR, {
            "previous_phase": event.previous_phase.value,
            "new_phase": event.new_phase.value,
        }
    if isinstance(event, ProposalRegistered):
        return EventKind.PROPOSAL_REGISTERED, SYSTEM_ACTOR, {
            "proposal_id": event.proposal_id,
        }
    if isinstance(event, Voted):
        return EventKind.VOTED, event.voter_id, {
            "voter_id": event.voter_id,
            "proposal_id": event.proposal_id,
        }
    raise TypeError(f"Unknown domain event: {type(event).__name__}")


class EventLog:
    """Append-only event log with optional file persistence.

    Events can only be appended, never modified or deleted. The log can
    be written to a JSONL file (one JSON object per line) and read back
    with integrity verification.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)
        # Continue numbering after recovered events
        self._event_counter = len(self._events)

    def emit(self, event: DomainEvent) -> None:
        """EventSink entry point: record a committed domain event."""
        kind, actor_id, payload = describe_event(event)
        self._event_counter += 1
        record = EventRecord.create(
            event_id=f"EVT-{self._event_counter:08d}",
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
        )
        self.append(record)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        self._events.append(event)
        self._event_ids.add(event.event_id)

        if self._storage_path:
            self._append_to_file(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def event_hashes(self, kind: Optional[EventKind] = None) -> list[str]:
        """Return event hashes for Merkle tree construction."""
        return [e.event_hash for e in self.events(kind)]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, event: EventRecord) -> None:
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs.
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

                self._events.append(EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(data["event_kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                ))
                self._event_ids.add(event_id)
        logger.debug("Recovered %d events from %s", len(self._events), path)
