"""autorsync entry point: wire the watcher, router and scheduler together."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.observers import Observer

from autorsync.config import Settings
from autorsync.exceptions import AutorsyncError, WatchRegistrationError
from autorsync.filesystem.config_loader import load_config
from autorsync.filesystem.tree_watcher import ChangeStream, TreeWatcher
from autorsync.services.dirty_state import DirtyState
from autorsync.services.dispatch_scheduler import DispatchScheduler
from autorsync.services.event_router import EventRouter
from autorsync.services.rsync_service import RsyncExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from watchdog.observers.api import BaseObserver

    from autorsync.models import SyncConfig
    from autorsync.services.rsync_service import SyncExecutor

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("watchdog").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.INFO if debug else logging.WARNING)


async def run_daemon(
    config: SyncConfig,
    settings: Settings,
    stop: asyncio.Event,
    *,
    executor: SyncExecutor | None = None,
    observer_factory: Callable[[], BaseObserver] = Observer,
) -> None:
    """Watch every mapping and dispatch syncs until ``stop`` is set.

    Startup registers all mappings before either loop runs; any registration
    failure aborts with ``WatchRegistrationError``. On stop, the pass in
    progress finishes, the router is cancelled and the observer is joined.
    """
    stream = ChangeStream(maxsize=settings.event_buffer_size)
    watcher = TreeWatcher(stream, observer_factory=observer_factory)
    state = DirtyState(config.mappings)
    if executor is None:
        executor = RsyncExecutor(settings.rsync_path)

    try:
        watcher.start()
    except OSError as exc:
        msg = f"failed to start filesystem observer: {exc}"
        raise WatchRegistrationError(msg) from exc

    try:
        for mapping in config.mappings:
            logger.info("Syncing %s to %s", mapping.source, mapping.target)
            watcher.watch_mapping(mapping)

        router = EventRouter(config.mappings, state, stream)
        scheduler = DispatchScheduler(state, executor, config.settings)
        router_task = asyncio.create_task(router.run(), name="autorsync-event-router")
        try:
            await scheduler.run(stop)
        finally:
            router_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await router_task
    finally:
        await asyncio.to_thread(watcher.stop)

    logger.info("autorsync stopped")


async def _serve(config: SyncConfig, settings: Settings) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows; Ctrl+C then surfaces as KeyboardInterrupt.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    await run_daemon(config, settings, stop)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autorsync",
        description="Watch source directories and mirror them to their targets with rsync",
    )
    parser.add_argument("--config", "-c", help="Config file (default: .autorsync)")
    parser.add_argument("--rsync", help="rsync executable to use (default: /usr/bin/rsync)")
    parser.add_argument("--debug", action="store_true", default=None, help="Verbose logging")
    return parser


def cli_entry(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for running the daemon."""
    args = build_parser().parse_args(argv)

    overrides: dict[str, object] = {}
    if args.config is not None:
        overrides["config_file"] = Path(args.config)
    if args.rsync is not None:
        overrides["rsync_path"] = args.rsync
    if args.debug is not None:
        overrides["debug"] = args.debug
    settings = Settings(**overrides)  # type: ignore[arg-type]

    _configure_logging(settings.debug)
    try:
        config = load_config(settings.config_file)
        asyncio.run(_serve(config, settings))
    except AutorsyncError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    cli_entry()
