"""Sync executor: runs rsync to make a mapping's target match its source."""

from __future__ import annotations

import asyncio
import logging
import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from autorsync.config import DEFAULT_RSYNC_PATH

if TYPE_CHECKING:
    from autorsync.models import GlobalSettings, Mapping

logger = logging.getLogger(__name__)

RSYNC_BASE_ARGS = ("-avzh",)


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one sync invocation."""

    success: bool
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    command: list[str] = field(default_factory=list)


class SyncExecutor(Protocol):
    """Anything that can bring a mapping's target up to date with its source."""

    async def sync(self, mapping: Mapping, settings: GlobalSettings) -> SyncOutcome: ...


def build_rsync_command(
    rsync_path: str, mapping: Mapping, settings: GlobalSettings
) -> list[str]:
    """Build the argv for one rsync run.

    Order: base flags, the global extra args, one ``--exclude`` per exclusion,
    then source and target exactly as configured.
    """
    return [
        rsync_path,
        *RSYNC_BASE_ARGS,
        *settings.rsync_args,
        *(f"--exclude={exclusion}" for exclusion in mapping.exclusions),
        mapping.source,
        mapping.target,
    ]


class RsyncExecutor:
    """Runs rsync as a child process and captures its output.

    Never raises for a failed run: a missing binary, an OS error or a non-zero
    exit status all come back as an unsuccessful ``SyncOutcome``.
    """

    def __init__(self, rsync_path: str = DEFAULT_RSYNC_PATH) -> None:
        self.rsync_path = rsync_path

    async def sync(self, mapping: Mapping, settings: GlobalSettings) -> SyncOutcome:
        command = build_rsync_command(self.rsync_path, mapping, settings)
        logger.info("%s", shlex.join(command))

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except FileNotFoundError:
            return SyncOutcome(
                success=False,
                stderr=f"rsync executable not found: {self.rsync_path}",
                command=command,
            )
        except OSError as exc:
            return SyncOutcome(
                success=False,
                stderr=f"failed to run {self.rsync_path}: {exc}",
                command=command,
            )

        return SyncOutcome(
            success=proc.returncode == 0,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            command=command,
        )
