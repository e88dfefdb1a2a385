"""
preview - development server with live reload.

`esite preview` (or `esite run preview`) builds the project for development,
serves the output tree, and rebuilds whenever the source tree changes.
"""

from __future__ import annotations

from esite.build.config import ConfigOption
from esite.build.context import BuildContext
from esite.build.runner import BuildRunner

OPTIONS = (
    ConfigOption("ErrorDocument", default="/error.html"),
    ConfigOption("PreviewPort", type="number", default=8080),
)


async def run(context: BuildContext, runner: BuildRunner) -> int:
    from esite.preview.devserver import DevServer

    server = DevServer(context, runner, port=int(context.config.get("PreviewPort", 8080)))
    return await server.serve_forever()
