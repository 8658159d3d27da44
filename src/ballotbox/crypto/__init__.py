"""Cryptographic primitives — Merkle commitments, digests, chain anchoring."""

from ballotbox.crypto.anchor import (
    AnchorRecord,
    AnchorSettings,
    anchor_to_chain,
    commitment_digest,
    election_digest,
)
from ballotbox.crypto.merkle import MerkleProof, MerkleTree

__all__ = [
    "AnchorRecord",
    "AnchorSettings",
    "anchor_to_chain",
    "commitment_digest",
    "election_digest",
    "MerkleProof",
    "MerkleTree",
]
