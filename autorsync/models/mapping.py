"""Mapping and settings records built once from the configuration file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True, eq=False)
class Mapping:
    """One source tree mirrored onto one target.

    ``source`` is kept exactly as configured (after environment expansion) because
    rsync treats a trailing slash specially. ``root`` is the absolute, normalized
    form used for watching. ``prefix`` is what event paths are attributed by: the
    root, plus a trailing separator when the configured source ended in one, so
    ``/data/app/`` does not claim changes under ``/data/app2``. Equality is
    identity, so two textually identical mappings remain separate entries.
    """

    source: str
    target: str
    exclusions: tuple[str, ...] = ()
    root: str = field(init=False, repr=False)
    prefix: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        root = os.path.abspath(self.source)
        object.__setattr__(self, "root", root)
        prefix = os.path.join(root, "") if self.source.endswith(os.sep) else root
        object.__setattr__(self, "prefix", prefix)


@dataclass(frozen=True)
class GlobalSettings:
    """Settings shared by every sync invocation."""

    interval: float
    rsync_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncConfig:
    """Fully loaded configuration: global settings plus mappings in file order."""

    settings: GlobalSettings
    mappings: tuple[Mapping, ...] = ()
