"""
Exception hierarchy for esite.

Setup problems (config, plugins, output directory) are fatal and raised.
Build step failures are returned as values; see esite.build.runner.
"""

from __future__ import annotations


class EsiteError(Exception):
    """Base class for all esite errors."""


class ConfigError(EsiteError):
    """esite.yaml is missing, unreadable, or fails validation.

    Carries every problem found so they can be reported together.
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + "\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class InvalidOption(ValueError):
    """Raised by option parsers; `expected` describes an acceptable value."""

    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(expected)


class PluginError(EsiteError):
    """A configured module cannot be resolved or lacks a required export."""

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + "\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class WorkspaceError(EsiteError):
    """The output directory cannot be prepared from the source tree."""
