"""
typescript - run the TypeScript compiler over the output tree.

The project's tsconfig.json, when present, is copied into the output
directory so `tsc` picks it up. Afterwards the .ts sources and the copied
tsconfig.json are removed.
"""

from __future__ import annotations

import shutil

from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.core.utils import list_files, log, run_cmd

OPTIONS = ()


async def compile_typescript(context: BuildContext) -> None:
    build_path = context.build_path
    sources = list_files(build_path, (".ts",))
    if not sources:
        log.dim("typescript: no .ts files in output")
        return

    tsconfig = context.config.project_root / "tsconfig.json"
    copied = build_path / "tsconfig.json"
    if tsconfig.is_file():
        shutil.copyfile(tsconfig, copied)

    try:
        await run_cmd(["tsc"], cwd=build_path)
    finally:
        copied.unlink(missing_ok=True)

    for path in sources:
        path.unlink(missing_ok=True)


BUILD_STEP = BuildStep("typescript", 50_000, True, compile_typescript)
