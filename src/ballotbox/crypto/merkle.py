"""Merkle commitment over event hashes.

Leaves are "sha256:<hex>" strings. They are sorted before the tree is
built, so the root depends only on the set of leaves. An odd node at
the end of a level is paired with itself.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Optional

PREFIX = "sha256:"


@dataclass(frozen=True)
class MerkleProof:
    """Inclusion proof: sibling hashes from leaf to root."""
    leaf_hash: str
    path: list[tuple[str, str]]  # (sibling_hash, "L" | "R")
    root: str

    def verify(self) -> bool:
        node = _strip(self.leaf_hash)
        for sibling, side in self.path:
            if side == "L":
                node = _hash_pair(sibling, node)
            else:
                node = _hash_pair(node, sibling)
        return PREFIX + node == self.root


class MerkleTree:
    """Deterministic SHA-256 Merkle tree.

    Usage:
        tree = MerkleTree(event_log.event_hashes())
        root = tree.root
        proof = tree.inclusion_proof(event_log.last_event.event_hash)
    """

    def __init__(self, leaves: Iterable[str] = ()) -> None:
        self._levels: list[list[str]] = [sorted(_strip(leaf) for leaf in leaves)]
        while len(self._levels[-1]) > 1:
            level = self._levels[-1]
            if len(level) % 2:
                level = level + [level[-1]]
            self._levels.append([
                _hash_pair(level[i], level[i + 1]) for i in range(0, len(level), 2)
            ])

    @property
    def leaf_count(self) -> int:
        return len(self._levels[0])

    @property
    def root(self) -> str:
        """Root hash; the hash of empty input for an empty tree."""
        if not self._levels[0]:
            return PREFIX + hashlib.sha256(b"").hexdigest()
        return PREFIX + self._levels[-1][0]

    def inclusion_proof(self, leaf_hash: str) -> Optional[MerkleProof]:
        """Return a proof for leaf_hash, or None if it is not a leaf."""
        target = _strip(leaf_hash)
        if target not in self._levels[0]:
            return None

        index = self._levels[0].index(target)
        path: list[tuple[str, str]] = []
        for level in self._levels[:-1]:
            if index % 2:
                path.append((level[index - 1], "L"))
            else:
                sibling = index + 1 if index + 1 < len(level) else index
                path.append((level[sibling], "R"))
            index //= 2
        return MerkleProof(leaf_hash=PREFIX + target, path=path, root=self.root)


def _strip(value: str) -> str:
    return value.removeprefix(PREFIX)


def _hash_pair(left: str, right: str) -> str:
    return hashlib.sha256(f"{left}{right}".encode("utf-8")).hexdigest()
