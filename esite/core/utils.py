"""
Shared utilities for the esite CLI.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

CONFIG_FILE = "esite.yaml"

# Reserved URL prefix of the dev server; never maps onto the output tree
RESERVED_PREFIX = "/-/esite/"


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a section header."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        print(f"  {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        print(f"  {self._color('[ERROR]', 'red')} {message}", file=sys.stderr)

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        print(f"  {self._color(message, 'dim')}")


# Global logger instance
log = Logger()


# =============================================================================
# Path Utilities
# =============================================================================


def find_project_root(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find the project root (directory containing esite.yaml).

    Searches from start_dir (or cwd) upward to the filesystem root.
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    while True:
        if (current / CONFIG_FILE).exists():
            return current
        if current == current.parent:
            return None
        current = current.parent


def list_files(root: Path, suffixes: Optional[tuple[str, ...]] = None) -> list[Path]:
    """List all files below root, optionally filtered by suffix."""
    files = [p for p in sorted(root.rglob("*")) if p.is_file()]
    if suffixes:
        files = [p for p in files if p.suffix in suffixes]
    return files


def relative_posix(path: Path, root: Path) -> str:
    """Return path relative to root with forward slashes."""
    return path.relative_to(root).as_posix()


def format_duration(seconds: float) -> str:
    """Format seconds as "0.5s" or "1m 5.3s"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, remaining = divmod(seconds, 60)
    return f"{int(minutes)}m {remaining:.1f}s"


# =============================================================================
# Runtime Utilities
# =============================================================================


class CommandError(RuntimeError):
    """Raised when an external command exits non-zero."""

    def __init__(self, cmd: list[str], returncode: int, stdout: str, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        output = (stderr or stdout).strip()
        message = f"Command failed ({returncode}): {' '.join(cmd)}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


async def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    stdin: Optional[bytes] = None,
) -> bytes:
    """Run a command without blocking the event loop.

    Returns stdout. Raises CommandError on a non-zero exit and
    FileNotFoundError when the executable is not installed.
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=cwd,
        stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate(stdin)
    if process.returncode != 0:
        raise CommandError(
            cmd,
            process.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
    return stdout
