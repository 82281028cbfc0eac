"""
Recorded state store for seqctl.

Persists the last known attributes of each managed resource in a JSON file,
keyed by resource name. The file holds API key tokens, so it is written with
owner-only permissions.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass
class StateEntry:
    """Recorded state of one resource."""

    name: str
    action_plugin: str
    attributes: Dict[str, Any] = field(default_factory=dict, repr=False)
    spec_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_plugin": self.action_plugin,
            "attributes": self.attributes,
            "spec_hash": self.spec_hash,
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "StateEntry":
        return cls(
            name=name,
            action_plugin=data["action_plugin"],
            attributes=data.get("attributes") or {},
            spec_hash=data.get("spec_hash"),
        )


class StateStore:
    """JSON file backed store of recorded resource state."""

    def __init__(self, path: str):
        self.path = path
        self._entries: Dict[str, StateEntry] = {}

    @classmethod
    def load(cls, path: str) -> "StateStore":
        """
        Load a state file; a missing file yields an empty store.

        Raises:
            ValueError: If the file is not a valid state document.
        """
        store = cls(path)
        if not os.path.exists(path):
            logger.debug(f"State file {path} does not exist, starting empty")
            return store

        with open(path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid state file {path}: {e}") from e

        if not isinstance(data, dict) or data.get("version") != STATE_VERSION:
            raise ValueError(
                f"Invalid state file {path}: unsupported state version "
                f"{data.get('version') if isinstance(data, dict) else None}"
            )

        resources = data.get("resources") or {}
        if not isinstance(resources, dict):
            raise ValueError(f"Invalid state file {path}: resources must be an object")

        for name, entry in resources.items():
            try:
                store._entries[name] = StateEntry.from_dict(name, entry)
            except (KeyError, TypeError, AttributeError) as e:
                raise ValueError(
                    f"Invalid state file {path}: resource {name}: {e!r}"
                ) from e

        return store

    def get(self, name: str) -> Optional[StateEntry]:
        return self._entries.get(name)

    def put(self, entry: StateEntry) -> None:
        self._entries[entry.name] = entry

    def remove(self, name: str) -> bool:
        """Remove a resource from state, returning whether it was recorded."""
        return self._entries.pop(name, None) is not None

    def names(self) -> List[str]:
        return sorted(self._entries)

    def save(self) -> None:
        """Write the state file atomically with 0600 permissions."""
        document = {
            "version": STATE_VERSION,
            "resources": {
                name: self._entries[name].to_dict() for name in self.names()
            },
        }

        tmp_path = f"{self.path}.tmp"
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(document, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved state for {len(self._entries)} resource(s) to {self.path}")
