"""
Shortcut data model.

A shortcut is a named shell command. App shortcuts follow the host's
application lifecycle, everything else is a background script whose
lifetime is its process.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field, replace as _replace
from typing import Any, Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class Shortcut:
    """A user-defined named command."""

    id: str
    name: str
    cmd: str
    position: int = 0
    is_app: bool = False
    hooks: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Shortcut id must not be empty")
        # Accept any iterable of hook ids but store an immutable tuple
        object.__setattr__(self, "hooks", tuple(self.hooks))

    @classmethod
    def create(
        cls,
        name: str,
        cmd: str,
        position: int = 0,
        is_app: bool = False,
        hooks: Iterable[str] = (),
    ) -> Shortcut:
        """Create a new shortcut with a freshly generated id."""
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            cmd=cmd,
            position=position,
            is_app=is_app,
            hooks=tuple(hooks),
        )

    def replace(self, **changes) -> Shortcut:
        """Return an updated copy of this shortcut. The id cannot change."""
        if "id" in changes and changes["id"] != self.id:
            raise ValueError("Shortcut id is immutable")
        return _replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire form."""
        return {
            "id": self.id,
            "name": self.name,
            "cmd": self.cmd,
            "position": self.position,
            "isApp": self.is_app,
            "hooks": list(self.hooks),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Shortcut:
        """Build a shortcut from its wire form."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            cmd=data.get("cmd", ""),
            position=int(data.get("position", 0)),
            is_app=bool(data.get("isApp", False)),
            hooks=tuple(data.get("hooks") or ()),
        )


def validate_shortcuts(shortcuts: Mapping[str, Shortcut]):
    """Check that every key equals the id of its value.

    Raises:
        ValueError: On the first mismatching entry
    """
    for key, shortcut in shortcuts.items():
        if key != shortcut.id:
            raise ValueError(
                f"Shortcut key {key!r} does not match its id {shortcut.id!r}"
            )


def sort_shortcuts(shortcuts: Mapping[str, Shortcut]) -> Dict[str, Shortcut]:
    """Return a new dictionary ordered by position (ties broken by name)."""
    ordered = sorted(shortcuts.values(), key=lambda s: (s.position, s.name))
    return {s.id: s for s in ordered}
