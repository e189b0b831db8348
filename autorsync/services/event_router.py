"""Event router: attribute each change to its mapping and mark it dirty."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autorsync.filesystem.tree_watcher import ChangeStream
    from autorsync.models import ChangeEvent, Mapping
    from autorsync.services.dirty_state import DirtyState

logger = logging.getLogger(__name__)


class EventRouter:
    """Consumes the shared change stream and flags the owning mapping.

    Attribution is a string-prefix test of the event path against each
    mapping's prefix, in configuration order; the first match wins. Overlapping
    roots are therefore resolved in favour of the mapping listed first.
    Exclusions play no part here: they only shape the watch set and the rsync
    command line.
    """

    def __init__(
        self,
        mappings: Sequence[Mapping],
        state: DirtyState,
        stream: ChangeStream,
    ) -> None:
        self.mappings = tuple(mappings)
        self.state = state
        self.stream = stream

    def attribute(self, path: str) -> Mapping | None:
        """Return the first mapping whose prefix matches ``path``."""
        for mapping in self.mappings:
            if path == mapping.root or path.startswith(mapping.prefix):
                return mapping
        return None

    async def route(self, event: ChangeEvent) -> Mapping | None:
        """Mark the owning mapping dirty. Returns it, or None if the event was dropped.

        For moves the destination is tried when the source path is unowned, so a
        file moved into a watched tree from outside still counts as a change.
        """
        logger.info("[event] detected change to %s", event.path)
        candidates = [event.path] if event.dest_path is None else [event.path, event.dest_path]
        for path in candidates:
            mapping = self.attribute(path)
            if mapping is not None:
                await self.state.mark_dirty(mapping)
                return mapping

        logger.warning("No mapping for change to %s, dropping event", event.path)
        return None

    async def run(self) -> None:
        """Route events and log watcher errors until cancelled."""
        async with asyncio.TaskGroup() as tg:
            tg.create_task(self._consume_events())
            tg.create_task(self._consume_errors())

    async def _consume_events(self) -> None:
        while True:
            event = await self.stream.next_event()
            try:
                await self.route(event)
            except Exception:
                logger.exception("Failed to route change to %s", event.path)

    async def _consume_errors(self) -> None:
        while True:
            error = await self.stream.next_error()
            logger.error("[error] %s", error)
