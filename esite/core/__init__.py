"""
esite.core - Foundation layer for the esite CLI.

Exports logging, path helpers, command running, and the error hierarchy.
"""

from esite.core.utils import (
    # Logging
    log,
    Logger,
    # Constants
    CONFIG_FILE,
    RESERVED_PREFIX,
    # Path utilities
    find_project_root,
    list_files,
    relative_posix,
    format_duration,
    # Runtime utilities
    CommandError,
    run_cmd,
)
from esite.core.errors import (
    EsiteError,
    ConfigError,
    InvalidOption,
    PluginError,
    WorkspaceError,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    # Constants
    "CONFIG_FILE",
    "RESERVED_PREFIX",
    # Path utilities
    "find_project_root",
    "list_files",
    "relative_posix",
    "format_duration",
    # Runtime utilities
    "CommandError",
    "run_cmd",
    # Errors
    "EsiteError",
    "ConfigError",
    "InvalidOption",
    "PluginError",
    "WorkspaceError",
]
