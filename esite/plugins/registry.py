"""
Plugin registry: resolves configured module names to plugin modules.

Built-in plugins live in the esite.plugins package; module names use hyphens
where the Python module uses underscores (cache-bust -> cache_bust).
Third-party plugins are found through the `esite.plugins` entry-point group.
"""

from __future__ import annotations

import importlib
import pkgutil
from importlib.metadata import entry_points
from types import ModuleType
from typing import Iterable, Iterator, Optional

from esite.build.config import ConfigOption
from esite.build.steps import BuildStep
from esite.core.errors import PluginError
from esite.plugins.base import Plugin

ENTRY_POINT_GROUP = "esite.plugins"
BUILTIN_PACKAGE = "esite.plugins"

# Modules of esite.plugins that are not plugins themselves
_INTERNAL_MODULES = {"base", "registry"}


class PluginRegistry:
    """Ordered collection of loaded plugins, keyed by module name."""

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Register a plugin.

        Raises:
            ValueError: If a plugin with the same name is already registered.
        """
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' is already registered")
        self._plugins[plugin.name] = plugin

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def names(self) -> list[str]:
        return list(self._plugins)

    def options(self) -> list[ConfigOption]:
        """Config options contributed by all plugins, in load order."""
        return [option for plugin in self for option in plugin.options]

    def build_steps(self) -> list[BuildStep]:
        return [plugin.build_step for plugin in self if plugin.build_step is not None]

    def deployers(self) -> list[Plugin]:
        return [plugin for plugin in self if plugin.deploy is not None]

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Plugin]:
        return iter(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)


def builtin_plugins() -> list[str]:
    """Names of the plugins shipped with esite, sorted."""
    package = importlib.import_module(BUILTIN_PACKAGE)
    return sorted(
        info.name.replace("_", "-")
        for info in pkgutil.iter_modules(package.__path__)
        if info.name not in _INTERNAL_MODULES and not info.name.startswith("_")
    )


def import_plugin_module(name: str) -> ModuleType:
    """Import the module implementing plugin `name`.

    Raises:
        ModuleNotFoundError: If neither a built-in nor an entry point matches.
    """
    module_name = name.replace("-", "_")
    if module_name not in _INTERNAL_MODULES and module_name.isidentifier():
        qualified = f"{BUILTIN_PACKAGE}.{module_name}"
        try:
            return importlib.import_module(qualified)
        except ModuleNotFoundError as e:
            # Only a missing built-in falls through; broken imports inside it propagate
            if e.name != qualified:
                raise

    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        if entry_point.name == name:
            return entry_point.load()

    raise ModuleNotFoundError(f"No plugin named '{name}'", name=name)


def resolve_plugins(names: Iterable[str]) -> PluginRegistry:
    """Load every named plugin.

    All resolution problems are collected and raised together.

    Raises:
        PluginError: If any module is missing or lacks required exports.
    """
    registry = PluginRegistry()
    problems: list[str] = []

    for name in names:
        if name in registry:
            continue
        try:
            module = import_plugin_module(name)
        except ModuleNotFoundError:
            problems.append(f'Module "{name}" not found (is it installed?)')
            continue

        try:
            registry.register(Plugin.from_module(name, module))
        except TypeError as e:
            problems.append(f'Module "{name}" {e}')

    if problems:
        raise PluginError("Could not load modules:", problems)
    return registry
