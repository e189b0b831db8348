"""Core records shared by the watcher, router and scheduler."""

from autorsync.models.events import ChangeEvent, ChangeKind
from autorsync.models.mapping import GlobalSettings, Mapping, SyncConfig

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "GlobalSettings",
    "Mapping",
    "SyncConfig",
]
