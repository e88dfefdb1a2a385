"""
esite build - build the project once.
"""

from __future__ import annotations

import argparse
import asyncio

from esite.build.runner import BuildMode, BuildRunner
from esite.core.utils import log
from esite.project import load_project, resolve_project


def cmd_build(args: argparse.Namespace) -> int:
    """Execute the build command."""
    context = load_project(resolve_project(args.project))
    mode = BuildMode.DEV if args.dev else BuildMode.PROD

    outcome = asyncio.run(BuildRunner(context).run(mode))
    if not outcome.ok:
        log.error(f"Build failed with {len(outcome.failures)} error(s)")
        return 1

    log.info(f"Output: {context.build_path}")
    return 0
