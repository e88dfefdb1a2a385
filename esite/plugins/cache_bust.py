"""
cache-bust - replace cache-bust tokens with content hashes.

With the default token, output files may contain:

    [CACHE_BUST=/css/main.css]   hash of <build>/css/main.css
    [CACHE_BUST=img/logo.svg]    hash relative to the containing file
    main.css?v=[CACHE_BUST]      hash of the path before the `?`

The hash is the url-safe base64 SHA-1 of the target file. Runs for
production builds only.
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

from esite.build.config import ConfigOption
from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.core.utils import list_files, relative_posix

OPTIONS = (ConfigOption("CacheBustToken", default="CACHE_BUST"),)


class CacheBustError(ValueError):
    pass


def file_hash(path: Path) -> str:
    digest = hashlib.sha1(path.read_bytes()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class CacheBuster:
    """Rewrites tokens in the files of one output tree."""

    def __init__(self, build_path: Path, token: str):
        self.build_path = build_path
        self.prefix = f"[{token}"
        self._hashes: dict[Path, str] = {}

    def _hash(self, path: Path) -> str:
        if path not in self._hashes:
            self._hashes[path] = file_hash(path)
        return self._hashes[path]

    def _location(self, path: Path, content: str, index: int) -> str:
        line = content.count("\n", 0, index) + 1
        return f"{relative_posix(path, self.build_path)}:{line}"

    def _resolve(self, path: Path, target: str, content: str, index: int) -> Path:
        if target == "":
            # Implicit target: the attribute value up to the query string
            query_end = content.rfind("?", 0, index)
            if query_end != -1:
                start = max(content.rfind(quote, 0, query_end) for quote in "\"'`=")
                target = "=" + content[start + 1:query_end]

        if not target.startswith("="):
            raise CacheBustError(
                f'Cache-bust | File "{self._location(path, content, index)}" | '
                f'Target "{target}" is invalid'
            )

        target = target[1:]
        if target.startswith("/"):
            return (self.build_path / target.lstrip("/")).resolve()
        return (path.parent / target).resolve()

    def bust(self, path: Path) -> bool:
        """Rewrite one file in place. Returns True if it contained tokens."""
        data = path.read_bytes()
        if self.prefix.encode("utf-8") not in data:
            return False
        content = data.decode("utf-8")

        parts: list[str] = []
        position = 0
        index = content.find(self.prefix)
        while index != -1:
            start = index + len(self.prefix)
            end = content.find("]", start)
            if end == -1:
                raise CacheBustError(
                    f'Cache-bust | File "{self._location(path, content, index)}" | '
                    f"Token is not closed with ]"
                )
            raw_target = content[start:end]
            target = self._resolve(path, raw_target, content, index)
            if not target.is_file():
                raise CacheBustError(
                    f'Cache-bust | File "{self._location(path, content, index)}" | '
                    f'Target "{raw_target}" (resolved "{target}") doesn\'t exist'
                )
            parts.append(content[position:index])
            parts.append(self._hash(target))
            position = end + 1
            index = content.find(self.prefix, position)

        parts.append(content[position:])
        path.write_text("".join(parts), encoding="utf-8")
        return True


def bust_caches(context: BuildContext) -> None:
    buster = CacheBuster(context.build_path, context.config.get("CacheBustToken", "CACHE_BUST"))
    for path in list_files(context.build_path):
        buster.bust(path)


BUILD_STEP = BuildStep("cache-bust", 925_000, False, bust_caches)
