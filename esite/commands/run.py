"""
esite run <module> - run an executable module such as preview.
"""

from __future__ import annotations

import argparse
import asyncio

from esite.build.context import BuildContext
from esite.build.runner import BuildRunner
from esite.core.errors import PluginError
from esite.plugins.base import call_plugin
from esite.project import load_project, resolve_project


async def run_module(context: BuildContext, name: str) -> int:
    plugin = context.plugins.get(name)
    if plugin is None or plugin.run is None:
        raise PluginError(f'Module "{name}" is not executable (it has no run function)')
    result = await call_plugin(plugin.run, context, BuildRunner(context))
    return int(result or 0)


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the run command."""
    context = load_project(resolve_project(args.project), extra_modules=[args.module])
    return asyncio.run(run_module(context, args.module))
