"""
sass - compile .scss/.sass files in the output tree to .css.

Uses the `sass` command line compiler (Dart Sass). Partials (files starting
with an underscore) are not compiled on their own; every Sass source is
removed from the output once compilation succeeds. Compile errors point at
the source file and line that caused them.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.core.utils import CommandError, list_files, relative_posix, run_cmd

SASS_SUFFIXES = (".scss", ".sass")

OPTIONS = ()

# First stack frame of a Dart Sass error: "  css/_vars.scss 12:3  @use"
_FRAME = re.compile(r"^\s*(?P<file>\S+\.s[ac]ss) (?P<line>\d+):\d+", re.MULTILINE)


def describe_error(context: BuildContext, path: Path, stderr: str) -> str:
    """Turn sass stderr into "SASS | src/file.scss:line | message".

    The frame path is relative to the output tree, which mirrors the source
    tree, so it is reported below the source directory.
    """
    lines = [line for line in stderr.strip().splitlines() if line.strip()]
    message = lines[0].removeprefix("Error: ") if lines else "compilation failed"

    file = relative_posix(path, context.build_path)
    match = _FRAME.search(stderr)
    if match and not Path(match["file"]).is_absolute():
        file = match["file"]
    location = f"{relative_posix(context.source_path, context.config.project_root)}/{file}"
    if match:
        location += f":{match['line']}"
    return f"SASS | {location} | {message}"


async def _compile(context: BuildContext, path: Path) -> None:
    source = relative_posix(path, context.build_path)
    target = relative_posix(path.with_suffix(".css"), context.build_path)
    try:
        await run_cmd(["sass", "--no-source-map", source, target], cwd=context.build_path)
    except CommandError as e:
        raise RuntimeError(describe_error(context, path, e.stderr)) from e


async def compile_sass(context: BuildContext) -> None:
    sources = list_files(context.build_path, SASS_SUFFIXES)
    await asyncio.gather(
        *(_compile(context, path) for path in sources if not path.name.startswith("_"))
    )
    for path in sources:
        path.unlink()


BUILD_STEP = BuildStep("sass", 50_000, True, compile_sass)
