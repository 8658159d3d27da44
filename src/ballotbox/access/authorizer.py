"""Caller authorization — the engine's only view of identity.

The engine never authenticates anyone. It asks an Authorizer two
questions about an already-resolved caller identity. OwnerAuthorizer is
the default: a single administrator fixed at construction, with voter
membership answered by a lookup bound to the engine's voter registry.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol


def require_identity(identity: str, label: str) -> str:
    """Return an identity unchanged, rejecting blank or padded values.

    Identities are compared exactly, so " alice" and "alice" would be two
    different callers. Padded values are refused instead of silently
    stripped.
    """
    if not identity or not identity.strip():
        raise ValueError(f"{label} cannot be empty")
    if identity != identity.strip():
        raise ValueError(f"{label} has surrounding whitespace: {identity!r}")
    return identity


class Authorizer(Protocol):
    """Role checks consumed by the election engine."""

    def is_administrator(self, caller: str) -> bool:
        ...

    def is_registered_voter(self, caller: str) -> bool:
        ...


class OwnerAuthorizer:
    """One owner administers the election; voters come from a lookup.

    Usage:
        authorizer = OwnerAuthorizer("admin")
        engine = ElectionEngine(authorizer)
        authorizer.bind_voter_lookup(engine.is_registered)

    ``ElectionEngine.owned_by`` performs this wiring.
    """

    def __init__(
        self,
        administrator_id: str,
        voter_lookup: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self._administrator_id = require_identity(administrator_id, "Administrator ID")
        self._voter_lookup = voter_lookup

    @property
    def administrator_id(self) -> str:
        return self._administrator_id

    def bind_voter_lookup(self, voter_lookup: Callable[[str], bool]) -> None:
        self._voter_lookup = voter_lookup

    def is_administrator(self, caller: str) -> bool:
        return caller == self._administrator_id

    def is_registered_voter(self, caller: str) -> bool:
        # No lookup bound means no voter can be recognised yet.
        if self._voter_lookup is None:
            return False
        return self._voter_lookup(caller)
