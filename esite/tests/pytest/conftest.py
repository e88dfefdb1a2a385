"""
Shared pytest fixtures for esite tests.

Provides temporary projects and build contexts so tests never touch a real
site. Async code is driven with asyncio.run() inside plain test functions.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from esite.build.config import Config
from esite.build.context import BuildContext
from esite.core.utils import log


# =============================================================================
# Test Data Constants
# =============================================================================

# Source tree of the sample project: relative path -> content
SAMPLE_SOURCE: dict[str, bytes] = {
    "index.html": b"<html><body><h1>Home</h1></body></html>",
    "about.html": b"<html><body>About</body></html>",
    "css/site.css": b"body { color: black; }",
    "img/logo.svg": b'<svg xmlns="http://www.w3.org/2000/svg"><circle r="4"/></svg>',
    "data/blob.bin": bytes(range(256)),
}


def write_tree(root: Path, files: dict[str, bytes]) -> None:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )


@pytest.fixture(autouse=True)
def plain_output() -> None:
    """Keep captured output free of ANSI codes."""
    log.set_color(False)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project with a sample source tree and a minimal esite.yaml."""
    write_tree(tmp_path / "src", SAMPLE_SOURCE)
    (tmp_path / "esite.yaml").write_text("SourcePath: ./src\nBuildPath: ./build\n")
    return tmp_path


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., BuildContext]:
    """Factory for BuildContexts over the sample source tree.

    Keyword arguments become validated options (e.g. ErrorDocument).
    """

    def _make(files: dict[str, bytes] | None = None, **options) -> BuildContext:
        source = tmp_path / "src"
        write_tree(source, SAMPLE_SOURCE if files is None else files)
        source.mkdir(exist_ok=True)
        config = Config(
            project_root=tmp_path,
            source_path=source,
            build_path=tmp_path / "build",
            options=options,
        )
        return BuildContext(config)

    return _make


@pytest.fixture
def context(make_context: Callable[..., BuildContext]) -> BuildContext:
    """A BuildContext over the sample source tree, no steps registered."""
    return make_context()
