"""Dispatch scheduler: on every tick, sync each dirty mapping once."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from autorsync.services.rsync_service import SyncOutcome

if TYPE_CHECKING:
    from autorsync.models import GlobalSettings
    from autorsync.services.dirty_state import DirtyState
    from autorsync.services.rsync_service import SyncExecutor

logger = logging.getLogger(__name__)


class DispatchScheduler:
    """Fixed-rate ticker that turns dirty flags into sync invocations.

    A pass holds the dirty-state lock throughout, so syncs for several dirty
    mappings on one tick run one after another. Each flag is cleared after its
    sync attempt whatever the result; a failed sync is only retried once a new
    change dirties the mapping again.
    """

    def __init__(
        self,
        state: DirtyState,
        executor: SyncExecutor,
        settings: GlobalSettings,
    ) -> None:
        if settings.interval <= 0:
            msg = f"interval must be positive, got {settings.interval}"
            raise ValueError(msg)
        self.state = state
        self.executor = executor
        self.settings = settings

    async def tick(self) -> list[SyncOutcome]:
        """Run one scan-and-dispatch pass. Returns the outcomes in dispatch order."""
        outcomes: list[SyncOutcome] = []
        async with self.state.dispatch_pass() as dispatch:
            for mapping in dispatch.dirty_mappings():
                try:
                    outcome = await self.executor.sync(mapping, self.settings)
                except Exception as exc:
                    logger.exception("Sync of %s to %s raised", mapping.source, mapping.target)
                    outcome = SyncOutcome(success=False, stderr=str(exc))
                finally:
                    dispatch.clear(mapping)
                _log_outcome(outcome)
                outcomes.append(outcome)
        return outcomes

    async def run(self, stop: asyncio.Event) -> None:
        """Tick every ``interval`` seconds until ``stop`` is set.

        Ticks keep a fixed phase; ticks missed while a slow pass was running
        are dropped rather than fired back to back. A pass in progress when
        ``stop`` is set runs to completion.
        """
        loop = asyncio.get_running_loop()
        interval = self.settings.interval
        deadline = loop.time() + interval
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=max(0.0, deadline - loop.time()))
            except TimeoutError:
                pass
            else:
                break

            await self.tick()

            deadline += interval
            now = loop.time()
            if deadline <= now:
                missed = int((now - deadline) // interval) + 1
                logger.debug("Dispatch pass overran, skipping %d tick(s)", missed)
                deadline += missed * interval


def _log_outcome(outcome: SyncOutcome) -> None:
    if outcome.success:
        if outcome.stdout:
            logger.info("%s", outcome.stdout.rstrip())
    else:
        logger.error("[error] rsync failed: %s", outcome.stderr.rstrip())
