"""
Workspace manager: materializes the output tree before build steps run.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from esite.core.errors import WorkspaceError


def reset_output(source: Path, build: Path) -> None:
    """Clear the output directory and copy the whole source tree into it.

    The output directory is created when missing. Only its contents are
    removed, so a server holding the directory open keeps a valid handle.
    """
    if not source.is_dir():
        raise WorkspaceError(f"Source directory not found: {source}")

    try:
        build.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkspaceError(f"Cannot create output directory {build}: {e}") from e

    try:
        for child in build.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    except OSError as e:
        raise WorkspaceError(f"Cannot clear output directory {build}: {e}") from e

    try:
        shutil.copytree(source, build, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise WorkspaceError(f"Cannot copy {source} to {build}: {e}") from e


async def prepare_output(source: Path, build: Path) -> None:
    """Async wrapper running reset_output in a worker thread."""
    await asyncio.to_thread(reset_output, source, build)
