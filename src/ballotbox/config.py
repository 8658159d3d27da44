"""Election policy — the switches that settle restart behaviour.

Usage:
    policy = ElectionPolicy.from_config_dir(Path("config"))
    engine = ElectionEngine.owned_by("admin", policy=policy)

Defaults give every restarted round a clean slate: survivors start at
zero votes and every voter may vote again. Turning both switches off
carries the tie forward unchanged: survivors keep their tied
counts and voters who already voted stay locked out.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ElectionPolicy:
    """Tunable behaviour of an ElectionEngine."""
    reset_vote_counts_on_restart: bool = True
    clear_ballots_on_restart: bool = True

    POLICY_FILENAME = "election_policy.json"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElectionPolicy:
        """Build a policy from a plain mapping.

        Raises:
            ValueError: On unknown keys or non-boolean values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown election policy keys: {', '.join(unknown)}")
        for key, value in data.items():
            if not isinstance(value, bool):
                raise ValueError(
                    f"Election policy '{key}' must be a bool, "
                    f"got {type(value).__name__}"
                )
        return cls(**data)

    @classmethod
    def from_config_file(cls, path: Path) -> ElectionPolicy:
        """Load a policy from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a JSON object or fails validation.
        """
        if not path.exists():
            raise FileNotFoundError(f"Election policy not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Election policy must be a JSON object: {path}")
        return cls.from_dict(data)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> ElectionPolicy:
        return cls.from_config_file(config_dir / cls.POLICY_FILENAME)

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
