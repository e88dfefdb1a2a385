"""
Rebuild coordinator for the dev server.

Serializes rebuilds: at most one build runs at a time and at most one more
waits behind it. Requests arriving while a build is waiting join that build,
since every build starts from the full current source tree.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from esite.build.runner import BuildMode, BuildRunner
from esite.core.errors import WorkspaceError
from esite.core.utils import log


@dataclass(frozen=True)
class RebuildResult:
    success: bool
    latest: bool
    """False when a newer build was requested before this one settled."""

    @property
    def authoritative_success(self) -> bool:
        return self.success and self.latest


class RebuildCoordinator:
    """Runs dev builds one at a time and reports the latest outcome."""

    def __init__(self, runner: BuildRunner, mode: BuildMode = BuildMode.DEV):
        self.runner = runner
        self.mode = mode
        self._current: Optional[asyncio.Task[RebuildResult]] = None
        self._queued: Optional[asyncio.Task[RebuildResult]] = None
        self.executions = 0

    @property
    def busy(self) -> bool:
        return self._current is not None

    async def request_rebuild(self) -> RebuildResult:
        """Request a build and wait for it to settle.

        Cancelling the caller never cancels the build itself.

        Raises:
            WorkspaceError: The output directory could not be prepared.
        """
        task = self._queued
        if task is None:
            previous = self._current
            task = asyncio.create_task(self._execute(previous))
            self._current = task
            if previous is not None:
                self._queued = task
        return await asyncio.shield(task)

    async def _execute(self, previous: Optional[asyncio.Task[RebuildResult]]) -> RebuildResult:
        if previous is not None:
            await asyncio.wait([previous])

        this = asyncio.current_task()
        if self._queued is this:
            self._queued = None

        self.executions += 1
        try:
            success = await self._build()
        finally:
            latest = self._current is this
            if latest:
                self._current = None
        return RebuildResult(success, latest)

    async def _build(self) -> bool:
        try:
            outcome = await self.runner.run(self.mode)
        except WorkspaceError:
            raise
        except Exception as e:
            log.error(f"Build crashed: {e}")
            success = False
        else:
            success = outcome.ok

        if not success:
            log.warning("Fix the error and save again; serving the current output")
        return success
