"""
Build context shared by every component and build step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Iterator

from esite.build.config import Config
from esite.build.steps import StepRegistry

if TYPE_CHECKING:
    from esite.plugins.registry import PluginRegistry


class EncryptedPaths:
    """Output-relative directory prefixes whose documents are encrypted."""

    def __init__(self) -> None:
        self._prefixes: set[str] = set()

    @staticmethod
    def _normalize(path: str) -> str:
        return PurePosixPath("/", path.lstrip("/")).as_posix()

    def add(self, prefix: str) -> None:
        self._prefixes.add(self._normalize(prefix))

    def clear(self) -> None:
        self._prefixes.clear()

    def covers(self, path: str) -> bool:
        """True if path lies inside any recorded prefix."""
        candidate = PurePosixPath(self._normalize(path))
        return any(
            candidate == PurePosixPath(prefix) or PurePosixPath(prefix) in candidate.parents
            for prefix in self._prefixes
        )

    def __contains__(self, path: str) -> bool:
        return self.covers(path)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._prefixes))

    def __len__(self) -> int:
        return len(self._prefixes)


def _empty_plugins() -> "PluginRegistry":
    from esite.plugins.registry import PluginRegistry

    return PluginRegistry()


@dataclass
class BuildContext:
    """Everything a run needs, constructed once at startup.

    Passed by reference to the runner, the dev server components and every
    build step action.
    """

    config: Config
    steps: StepRegistry = field(default_factory=StepRegistry)
    plugins: "PluginRegistry" = field(default_factory=_empty_plugins)
    encrypted_paths: EncryptedPaths = field(default_factory=EncryptedPaths)

    @property
    def source_path(self) -> Path:
        return self.config.source_path

    @property
    def build_path(self) -> Path:
        return self.config.build_path
