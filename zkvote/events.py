# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# events.py

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

import cbor2

logger = logging.getLogger(__name__)

VOTER_REGISTERED = "VoterRegistered"
PHASE_CHANGED = "PhaseChanged"
VOTE_CAST = "VoteCast"
VOTE_REVEALED = "VoteRevealed"
VOTING_EXTENDED = "VotingExtended"
RESULTS_PUBLISHED = "ResultsPublished"

EVENT_KINDS = frozenset(
    {
        VOTER_REGISTERED,
        PHASE_CHANGED,
        VOTE_CAST,
        VOTE_REVEALED,
        VOTING_EXTENDED,
        RESULTS_PUBLISHED,
    }
)


@dataclass(frozen=True)
class AuditEvent:
    """A record of one successful state transition."""

    kind: str
    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind not in EVENT_KINDS:
            raise ValueError(f"unknown event kind: {self.kind}")

    def encode(self) -> bytes:
        """
        Canonical CBOR encoding of the event.

        The record is a two-entry map {0: kind, 1: fields}. Canonical CBOR
        (RFC 8949 §4.2) gives the same bytes for the same event on every
        node replaying the ledger.

        Returns:
            bytes: The encoded record.
        """
        return cbor2.dumps({0: self.kind, 1: self.fields}, canonical=True)


def decode_event(data: bytes) -> AuditEvent:
    """
    Parse a CBOR-encoded audit record.

    Raises:
        ValueError: If the record does not have the {0: kind, 1: fields} shape
            or names an unknown kind.
    """
    m = cbor2.loads(data)
    if not isinstance(m, dict):
        raise ValueError(f"Expected CBOR map, got {type(m).__name__}")
    if set(m) != {0, 1}:
        raise ValueError(f"Audit record must have keys 0 and 1, got {sorted(m)}")
    if not isinstance(m[0], str) or not isinstance(m[1], dict):
        raise ValueError("Audit record must map 0 to a kind and 1 to a field map")
    return AuditEvent(kind=m[0], fields=m[1])


class AuditLog:
    """Append-only sequence of audit events with optional subscribers."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._subscribers: list[Callable[[AuditEvent], None]] = []

    def subscribe(self, callback: Callable[[AuditEvent], None]) -> None:
        self._subscribers.append(callback)

    def append(self, event: AuditEvent) -> None:
        """
        Record an event, then notify subscribers.

        The transition an event describes has already happened, so a failing
        subscriber is logged and skipped rather than raised to the caller.
        """
        self._events.append(event)
        logger.debug("event %s %s", event.kind, event.fields)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("audit subscriber %r failed on %s", callback, event.kind)

    def of_kind(self, kind: str) -> list[AuditEvent]:
        return [e for e in self._events if e.kind == kind]

    def encode(self) -> list[bytes]:
        return [e.encode() for e in self._events]

    def __iter__(self) -> Iterator[AuditEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
