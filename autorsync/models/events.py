"""Filesystem change events delivered to the event router."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ChangeKind(StrEnum):
    """Kind of filesystem change reported by the watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single change notification. Not persisted."""

    path: str
    kind: ChangeKind
    is_directory: bool = False
    dest_path: str | None = None  # only set for moves
