"""
Plugin contract.

A plugin is a module exposing:

    OPTIONS     tuple of ConfigOption (required, may be empty)
    BUILD_STEP  BuildStep (optional)
    deploy      deploy(files, context) -> None (optional, may be async)
    run         run(context, runner) -> int | None (optional, may be async)

deploy receives every output file as a Path below context.build_path.
Deployers name uploaded objects with esite.commands.deploy.deploy_key(),
which honors RemoveHtmlExtension (`about.html` is uploaded as `about`).
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Optional

from esite.build.config import ConfigOption
from esite.build.steps import BuildStep


@dataclass(frozen=True)
class Plugin:
    """A resolved plugin module and the capabilities it exports."""

    name: str
    module: ModuleType
    options: tuple[ConfigOption, ...] = ()
    build_step: Optional[BuildStep] = None
    deploy: Optional[Callable[..., Any]] = None
    run: Optional[Callable[..., Any]] = None

    @classmethod
    def from_module(cls, name: str, module: ModuleType) -> "Plugin":
        """Read the exports of a plugin module.

        Raises:
            TypeError: If OPTIONS is missing or an export has the wrong shape.
        """
        if not hasattr(module, "OPTIONS"):
            raise TypeError("does not export OPTIONS")
        options = tuple(module.OPTIONS)
        for option in options:
            if not isinstance(option, ConfigOption):
                raise TypeError(f"OPTIONS contains {type(option).__name__}, expected ConfigOption")

        build_step = getattr(module, "BUILD_STEP", None)
        if build_step is not None and not isinstance(build_step, BuildStep):
            raise TypeError(f"BUILD_STEP is {type(build_step).__name__}, expected BuildStep")

        deploy = getattr(module, "deploy", None)
        run = getattr(module, "run", None)
        for export, value in (("deploy", deploy), ("run", run)):
            if value is not None and not callable(value):
                raise TypeError(f"{export} is not callable")

        return cls(name, module, options, build_step, deploy, run)


async def call_plugin(func: Callable[..., Any], *args: Any) -> Any:
    """Call a plugin function that may or may not be a coroutine function."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
