"""
Build configuration for esite.

Option schema, the immutable Config dataclass, and esite.yaml loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

import yaml

from esite.core.errors import ConfigError, InvalidOption
from esite.core.utils import CONFIG_FILE, log

__all__ = [
    "OPTION_TYPES",
    "CORE_OPTIONS",
    "NO_DEPLOY",
    "ConfigOption",
    "Config",
    "parse_local_path",
    "read_config_file",
    "module_names",
    "validate_config",
]

OPTION_TYPES = ("string", "boolean", "number", "string[]")

# Value of the Deploy key meaning "no deploy module"
NO_DEPLOY = "NONE"


# =============================================================================
# Option Schema
# =============================================================================


@dataclass(frozen=True)
class ConfigOption:
    """One key of esite.yaml, contributed by the core or by a plugin."""

    name: str
    """Key as written in esite.yaml (PascalCase)."""

    type: str = "string"
    """One of OPTION_TYPES."""

    optional: bool = True
    """Required options without a value are reported as missing."""

    default: Any = None
    """Value used when an optional key is absent."""

    parser: Optional[Callable[[Any], Any]] = None
    """Converts a type-checked value; raises InvalidOption to reject it."""

    def __post_init__(self) -> None:
        if self.type not in OPTION_TYPES:
            raise ValueError(
                f"Invalid type '{self.type}' for option '{self.name}'. "
                f"Must be one of: {', '.join(OPTION_TYPES)}"
            )

    def accepts(self, value: Any) -> bool:
        """Check value against the declared type."""
        if self.type == "boolean":
            return isinstance(value, bool)
        if self.type == "number":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self.type == "string[]":
            return isinstance(value, list) and all(isinstance(v, str) for v in value)
        return isinstance(value, str)


def parse_local_path(value: str) -> str:
    """Accept only paths relative to the project root."""
    if not value.startswith("./"):
        raise InvalidOption('a relative path in the project (start with "./")')
    return value.rstrip("/") or "."


CORE_OPTIONS: tuple[ConfigOption, ...] = (
    ConfigOption("SourcePath", default="./src", parser=parse_local_path),
    ConfigOption("BuildPath", default="./build", parser=parse_local_path),
    ConfigOption("RemoveHtmlExtension", type="boolean", default=True),
    ConfigOption("Modules", type="string[]", default=[]),
    ConfigOption("Deploy", default=NO_DEPLOY),
)


# =============================================================================
# Config
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Validated, immutable project configuration."""

    project_root: Path
    source_path: Path
    build_path: Path
    remove_html_extension: bool = True
    modules: tuple[str, ...] = ()
    deploy: Optional[str] = None
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, key: str, default: Any = None) -> Any:
        """Look up any validated option by its esite.yaml key."""
        return self.options.get(key, default)

    def has_module(self, name: str) -> bool:
        return name in self.modules


# =============================================================================
# Loading
# =============================================================================


def read_config_file(project_root: Path) -> dict[str, Any]:
    """Read esite.yaml from the project root as a plain mapping."""
    path = project_root / CONFIG_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{CONFIG_FILE} is not valid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE} must be a valid key-value object")
    return data


def module_names(raw: Mapping[str, Any], extra: Iterable[str] = ()) -> list[str]:
    """Collect the modules to load: Modules, the deploy module, then extras.

    Duplicates are dropped, keeping the first occurrence.
    """
    names: list[str] = []
    modules = raw.get("Modules")
    if isinstance(modules, list):
        names.extend(m for m in modules if isinstance(m, str))

    deploy = raw.get("Deploy")
    if isinstance(deploy, str) and deploy and deploy != NO_DEPLOY:
        names.append(f"deploy-{deploy}")

    names.extend(extra)
    return list(dict.fromkeys(names))


def validate_config(
    raw: Mapping[str, Any],
    project_root: Path,
    schema: Iterable[ConfigOption] = CORE_OPTIONS,
    modules: Iterable[str] = (),
) -> Config:
    """Validate raw esite.yaml data against the option schema.

    Every missing or invalid key is collected before raising, so a single
    ConfigError reports all of them. Unknown keys only produce a warning.
    """
    schema = list(schema)
    known = {option.name for option in schema}
    unknown = sorted(key for key in raw if key not in known)

    values: dict[str, Any] = {}
    problems: list[str] = []

    for option in schema:
        value = raw.get(option.name)
        if value is None:
            if not option.optional:
                problems.append(f'Missing key "{option.name}"')
                continue
            value = option.default
            if value is None:
                values[option.name] = None
                continue

        if not option.accepts(value):
            problems.append(
                f'"{option.name}" should be of type {option.type} but got "{value}"'
            )
            continue

        if option.parser is not None:
            try:
                value = option.parser(value)
            except InvalidOption as e:
                problems.append(f'"{option.name}" should be {e.expected} but got "{value}"')
                continue

        values[option.name] = value

    if problems:
        raise ConfigError(f"Invalid {CONFIG_FILE}:", problems)

    if unknown:
        log.warning(f"Unknown keys in {CONFIG_FILE}: {', '.join(unknown)}")

    deploy = values.get("Deploy")
    return Config(
        project_root=project_root,
        source_path=(project_root / values["SourcePath"]).resolve(),
        build_path=(project_root / values["BuildPath"]).resolve(),
        remove_html_extension=values["RemoveHtmlExtension"],
        modules=tuple(modules) or tuple(values["Modules"]),
        deploy=None if deploy in (None, "", NO_DEPLOY) else deploy,
        options=MappingProxyType(values),
    )
