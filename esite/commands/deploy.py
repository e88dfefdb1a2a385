"""
esite deploy - production build followed by every deploy module.

Deploy modules are the configured modules named `deploy-<target>`; the
`Deploy` key of esite.yaml adds one automatically.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from esite.build.context import BuildContext
from esite.build.runner import BuildMode, BuildRunner
from esite.core.errors import PluginError
from esite.core.utils import list_files, log, relative_posix
from esite.plugins.base import call_plugin
from esite.project import load_project, resolve_project

DEPLOY_PREFIX = "deploy-"

# Files never uploaded
IGNORED_FILES = {".DS_Store"}


def output_files(build_path: Path) -> list[Path]:
    """Every file of the output tree, minus OS clutter."""
    return [p for p in list_files(build_path) if p.name not in IGNORED_FILES]


def deploy_key(path: Path, context: BuildContext) -> str:
    """Object key of an output file for deploy targets.

    The key is the output-relative path; with RemoveHtmlExtension a trailing
    `.html` is dropped (`blog/post.html` -> `blog/post`).
    """
    key = relative_posix(path, context.build_path)
    if context.config.remove_html_extension:
        key = key.removesuffix(".html")
    return key


async def deploy(context: BuildContext, runner: BuildRunner) -> int:
    deployers = [p for p in context.plugins if p.name.startswith(DEPLOY_PREFIX)]
    missing = [p.name for p in deployers if p.deploy is None]
    if missing:
        raise PluginError(
            "Invalid deploy modules:",
            [f'Module "{name}" has no deploy function' for name in missing],
        )

    outcome = await runner.run(BuildMode.PROD)
    if not outcome.ok:
        log.error("Build failed, nothing deployed")
        return 1
    log.success("Build successful")

    if not deployers:
        log.info("Skipping deploy as no deploy modules are configured")
        return 0

    files = output_files(context.build_path)
    for plugin in deployers:
        log.header(f"Deploying to {plugin.name[len(DEPLOY_PREFIX):]}")
        await call_plugin(plugin.deploy, files, context)
        log.success(f"{plugin.name}: {len(files)} files")
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    """Execute the deploy command."""
    context = load_project(resolve_project(args.project))
    return asyncio.run(deploy(context, BuildRunner(context)))
