"""Per-mapping "needs sync" flags shared by the event router and the scheduler."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from autorsync.models import Mapping


class DirtyState:
    """One boolean per configured mapping, guarded by a single lock.

    The set of mappings is fixed at construction; only flag values change.
    Every read and write goes through the lock, so the router and the
    scheduler never interleave inside a check-and-act sequence.
    """

    def __init__(self, mappings: Iterable[Mapping]) -> None:
        self._flags: dict[Mapping, bool] = dict.fromkeys(mappings, False)
        self._lock = asyncio.Lock()

    @property
    def mappings(self) -> tuple[Mapping, ...]:
        """Mappings in configuration order."""
        return tuple(self._flags)

    async def mark_dirty(self, mapping: Mapping) -> None:
        """Flag a mapping as needing a sync.

        Raises:
            KeyError: If the mapping was not configured.
        """
        async with self._lock:
            self._require(mapping)
            self._flags[mapping] = True

    async def is_dirty(self, mapping: Mapping) -> bool:
        async with self._lock:
            self._require(mapping)
            return self._flags[mapping]

    async def snapshot(self) -> dict[Mapping, bool]:
        """Copy of all flags taken under the lock."""
        async with self._lock:
            return dict(self._flags)

    @asynccontextmanager
    async def dispatch_pass(self) -> AsyncIterator[DispatchPass]:
        """Hold the lock for a whole scan-and-dispatch pass.

        Events arriving meanwhile wait for the lock and re-dirty their mapping
        after the pass, so no change is lost to a concurrent clear.
        """
        async with self._lock:
            yield DispatchPass(self._flags)

    def _require(self, mapping: Mapping) -> None:
        if mapping not in self._flags:
            msg = f"unknown mapping {mapping!r}"
            raise KeyError(msg)


class DispatchPass:
    """Lock-holding view handed out by ``DirtyState.dispatch_pass``."""

    def __init__(self, flags: dict[Mapping, bool]) -> None:
        self._flags = flags

    def dirty_mappings(self) -> list[Mapping]:
        """Dirty mappings in configuration order."""
        return [mapping for mapping, dirty in self._flags.items() if dirty]

    def clear(self, mapping: Mapping) -> None:
        self._flags[mapping] = False
