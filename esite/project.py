"""
Project loading: esite.yaml -> plugins -> validated Config -> BuildContext.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from esite.build.config import CORE_OPTIONS, module_names, read_config_file, validate_config
from esite.build.context import BuildContext
from esite.core.errors import ConfigError
from esite.core.utils import CONFIG_FILE, find_project_root, log
from esite.plugins.registry import resolve_plugins


def load_project(project_root: Path, extra_modules: Iterable[str] = ()) -> BuildContext:
    """Build the context for the project rooted at project_root.

    Plugins are resolved before validation because they extend the option
    schema. Their build steps are registered in load order; grouping happens
    on the first run.

    Raises:
        ConfigError: esite.yaml is unreadable or invalid.
        PluginError: a configured module cannot be loaded.
    """
    project_root = project_root.resolve()
    raw = read_config_file(project_root)
    names = module_names(raw, extra_modules)
    plugins = resolve_plugins(names)

    config = validate_config(
        raw,
        project_root,
        schema=[*CORE_OPTIONS, *plugins.options()],
        modules=names,
    )

    context = BuildContext(config, plugins=plugins)
    context.steps.register(*plugins.build_steps())

    if names:
        log.dim(f"Modules: {', '.join(names)}")
    return context


def resolve_project(project: Optional[str] = None) -> Path:
    """Resolve --project (or the current directory) to a project root.

    Without --project the directory tree is searched upward for esite.yaml.

    Raises:
        ConfigError: No esite.yaml was found.
    """
    if project:
        root = Path(project).expanduser().resolve()
        if not (root / CONFIG_FILE).is_file():
            raise ConfigError(f"No {CONFIG_FILE} found in {root}")
        return root

    root = find_project_root()
    if root is None:
        raise ConfigError(f"No {CONFIG_FILE} found in {Path.cwd()} or any parent directory")
    return root
