"""
Tests for plugin resolution and the plugin contract.
"""

from __future__ import annotations

import types

import pytest

from esite.build.config import ConfigOption
from esite.build.steps import BuildStep
from esite.core.errors import PluginError
from esite.plugins import registry as registry_module
from esite.plugins.base import Plugin
from esite.plugins.registry import (
    PluginRegistry,
    builtin_plugins,
    import_plugin_module,
    resolve_plugins,
)


class FakeEntryPoint:
    def __init__(self, name: str, module: types.ModuleType):
        self.name = name
        self._module = module

    def load(self) -> types.ModuleType:
        return self._module


def fake_module(name: str, **exports) -> types.ModuleType:
    module = types.ModuleType(name)
    for key, value in exports.items():
        setattr(module, key, value)
    return module


@pytest.fixture
def third_party(monkeypatch: pytest.MonkeyPatch):
    """Install fake entry points; returns the dict to fill."""
    modules: dict[str, types.ModuleType] = {}

    def _entry_points(group: str):
        assert group == registry_module.ENTRY_POINT_GROUP
        return [FakeEntryPoint(name, module) for name, module in modules.items()]

    monkeypatch.setattr(registry_module, "entry_points", _entry_points)
    return modules


# =============================================================================
# Resolution
# =============================================================================


@pytest.mark.evergreen
class TestResolution:
    """Module names resolve to built-ins first, then entry points."""

    def test_builtin_plugins(self) -> None:
        assert builtin_plugins() == ["cache-bust", "encrypt", "minify", "preview", "sass", "typescript"]

    def test_hyphenated_names_map_to_modules(self) -> None:
        module = import_plugin_module("cache-bust")

        assert module.__name__ == "esite.plugins.cache_bust"

    def test_internal_modules_are_not_plugins(self, third_party) -> None:
        with pytest.raises(ModuleNotFoundError):
            import_plugin_module("registry")

    def test_entry_point_plugins(self, third_party) -> None:
        third_party["deploy-memory"] = fake_module("memory", OPTIONS=())

        registry = resolve_plugins(["deploy-memory"])

        assert registry.names() == ["deploy-memory"]

    def test_all_problems_reported_together(self, third_party) -> None:
        third_party["no-options"] = fake_module("no_options")

        with pytest.raises(PluginError) as exc_info:
            resolve_plugins(["sass", "missing-one", "no-options", "missing-two"])

        problems = exc_info.value.problems
        assert len(problems) == 3
        assert 'Module "missing-one" not found (is it installed?)' in problems
        assert 'Module "no-options" does not export OPTIONS' in problems

    def test_load_order_is_kept(self) -> None:
        registry = resolve_plugins(["typescript", "sass", "cache-bust"])

        assert registry.names() == ["typescript", "sass", "cache-bust"]
        assert [s.name for s in registry.build_steps()] == ["typescript", "sass", "cache-bust"]


# =============================================================================
# Contract
# =============================================================================


@pytest.mark.evergreen
class TestPluginContract:
    """Plugin.from_module reads and checks exports."""

    def test_reads_all_exports(self) -> None:
        step = BuildStep("demo", 1, True, lambda ctx: None)
        option = ConfigOption("DemoKey")
        module = fake_module(
            "demo", OPTIONS=(option,), BUILD_STEP=step, deploy=lambda files, ctx: None
        )

        plugin = Plugin.from_module("demo", module)

        assert plugin.options == (option,)
        assert plugin.build_step is step
        assert plugin.deploy is not None
        assert plugin.run is None

    def test_rejects_bad_build_step(self) -> None:
        module = fake_module("demo", OPTIONS=(), BUILD_STEP=(1, True))

        with pytest.raises(TypeError, match="BUILD_STEP"):
            Plugin.from_module("demo", module)

    def test_rejects_bad_options(self) -> None:
        module = fake_module("demo", OPTIONS=({"name": "Key"},))

        with pytest.raises(TypeError, match="OPTIONS"):
            Plugin.from_module("demo", module)

    def test_duplicate_registration(self) -> None:
        registry = PluginRegistry()
        plugin = Plugin.from_module("demo", fake_module("demo", OPTIONS=()))
        registry.register(plugin)

        with pytest.raises(ValueError):
            registry.register(plugin)

    @pytest.mark.parametrize(
        "name, order, dev_required",
        [
            ("sass", 50_000, True),
            ("typescript", 50_000, True),
            ("cache-bust", 925_000, False),
            ("minify", 950_000, False),
            ("encrypt", 1_000_000, True),
        ],
    )
    def test_builtin_steps(self, name: str, order: int, dev_required: bool) -> None:
        plugin = resolve_plugins([name]).get(name)

        assert plugin.build_step.order == order
        assert plugin.build_step.dev_required is dev_required

    def test_preview_is_executable(self) -> None:
        plugin = resolve_plugins(["preview"]).get("preview")

        assert plugin.run is not None
        assert plugin.build_step is None
        assert [o.name for o in plugin.options] == ["ErrorDocument", "PreviewPort"]
