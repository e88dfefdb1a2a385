"""
Dev server: initial build, file watching, rebuilds and live reload.

Combines the notification server, the rebuild coordinator and the file
watcher. A build failure is reported and the server keeps serving whatever
is on disk; a WorkspaceError stops the server.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from esite.build.context import BuildContext
from esite.build.runner import BuildRunner
from esite.core.utils import log
from esite.preview.channel import EventChannel
from esite.preview.coordinator import RebuildCoordinator
from esite.preview.server import NotificationServer
from esite.preview.watcher import FileChangeWatcher


class DevServer:
    """Runs until stopped, interrupted, or a fatal error occurs."""

    def __init__(
        self,
        context: BuildContext,
        runner: BuildRunner,
        host: str = "localhost",
        port: int = 8080,
    ):
        self.context = context
        self.channel = EventChannel()
        self.coordinator = RebuildCoordinator(runner)
        self.server = NotificationServer(context, self.channel, host, port)
        self.watcher = FileChangeWatcher(
            context, self.coordinator, self.channel, on_fatal=self._fatal
        )
        self._done: Optional[asyncio.Future[int]] = None

    def _fatal(self, error: BaseException) -> None:
        log.error(f"Stopping dev server: {error}")
        if self._done is not None and not self._done.done():
            self._done.set_exception(error)

    def stop(self, exit_code: int = 0) -> None:
        if self._done is not None and not self._done.done():
            self._done.set_result(exit_code)

    async def serve_forever(self) -> int:
        """Serve until stop() is called.

        Raises:
            WorkspaceError: The output directory could not be prepared.
        """
        self._done = asyncio.get_running_loop().create_future()

        log.header("esite preview")
        result = await self.coordinator.request_rebuild()
        if not result.success:
            log.warning("Initial build failed; serving the current output")

        await self.server.start()
        try:
            self.watcher.start()
            log.info("Watching for changes... (Ctrl+C to stop)")
            return await self._done
        finally:
            self.watcher.stop()
            await self.server.close()
            log.info(f"Builds performed: {self.coordinator.executions}")
            log.success("Dev server stopped")
