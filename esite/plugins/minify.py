"""
minify - shrink the scripts, stylesheets, documents and images of the output.

Runs for production builds only, after cache busting and before encryption.

    .js .mjs .cjs           rjsmin
    .css                    rcssmin
    .html .htm              BeautifulSoup: comments dropped (MinifyHtmlComments),
                            whitespace collapsed, inline <script>/<style> minified
    .png .jpg .gif .webp    Pillow re-encode, kept only when smaller (MinifyImages)
"""

from __future__ import annotations

import asyncio
import io
import re
from functools import partial
from pathlib import Path
from typing import Callable

import rcssmin
import rjsmin
from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from PIL import Image

from esite.build.config import ConfigOption
from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.core.utils import list_files, log, relative_posix

OPTIONS = (
    ConfigOption("MinifyImages", type="boolean", default=True),
    ConfigOption("MinifyHtmlComments", type="boolean", default=True),
)

SCRIPT_SUFFIXES = (".js", ".mjs", ".cjs")
STYLE_SUFFIXES = (".css",)
DOCUMENT_SUFFIXES = (".html", ".htm")
IMAGE_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".gif": "GIF",
    ".webp": "WEBP",
}

# Whitespace is significant inside these
_PRESERVE_TAGS = {"pre", "textarea", "script", "style"}
_SCRIPT_TYPES = {"", "text/javascript", "application/javascript", "module"}

# Whitespace-only text between two of these (or at the edge of a parent) is dropped
_BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "dd", "details", "dialog",
    "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1",
    "h2", "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "li", "link",
    "main", "meta", "nav", "ol", "p", "pre", "script", "section", "style", "table",
    "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
}

_WHITESPACE = re.compile(r"\s+")


def minify_script(path: Path) -> None:
    path.write_text(rjsmin.jsmin(path.read_text(encoding="utf-8")), encoding="utf-8")


def minify_stylesheet(path: Path) -> None:
    path.write_text(rcssmin.cssmin(path.read_text(encoding="utf-8")), encoding="utf-8")


def _is_block(node) -> bool:
    return node is None or (isinstance(node, Tag) and node.name in _BLOCK_TAGS)


def _collapse_text(text: NavigableString) -> None:
    if any(parent.name in _PRESERVE_TAGS for parent in text.parents):
        return
    collapsed = _WHITESPACE.sub(" ", text)
    if collapsed == " " and (
        text.parent.name in ("[document]", "html", "head")
        or (_is_block(text.previous_sibling) and _is_block(text.next_sibling))
    ):
        text.extract()
    elif collapsed != text:
        text.replace_with(NavigableString(collapsed))


def minify_html(markup: str, remove_comments: bool = True) -> str:
    soup = BeautifulSoup(markup, "html.parser")

    if remove_comments:
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

    for script in soup.find_all("script"):
        if script.string and script.get("type", "").lower() in _SCRIPT_TYPES:
            script.string = rjsmin.jsmin(script.string)
    for style in soup.find_all("style"):
        if style.string:
            style.string = rcssmin.cssmin(style.string)

    # Exact type: Comment, Doctype and script/style contents are subclasses
    for text in soup.find_all(string=lambda s: type(s) is NavigableString):
        _collapse_text(text)

    return str(soup)


def minify_document(path: Path, remove_comments: bool = True) -> None:
    markup = path.read_text(encoding="utf-8")
    path.write_text(minify_html(markup, remove_comments), encoding="utf-8")


def minify_image(path: Path) -> bool:
    """Re-encode an image losslessly. Returns True if the file was replaced."""
    data = path.read_bytes()
    with Image.open(io.BytesIO(data)) as image:
        if getattr(image, "is_animated", False):
            return False
        image_format = IMAGE_FORMATS[path.suffix.lower()]
        options: dict = {"optimize": True}
        if image_format == "JPEG":
            options.update(quality="keep", subsampling="keep")
        elif image_format == "WEBP":
            options = {"lossless": True, "method": 6}
        for key in ("icc_profile", "exif"):
            if key in image.info:
                options[key] = image.info[key]

        buffer = io.BytesIO()
        image.save(buffer, format=image_format, **options)

    if buffer.tell() >= len(data):
        return False
    path.write_bytes(buffer.getvalue())
    return True


async def _minify(func: Callable[[Path], object], path: Path, build_path: Path) -> None:
    try:
        await asyncio.to_thread(func, path)
    except Exception as e:
        raise RuntimeError(f'Minify | File "{relative_posix(path, build_path)}" | {e}') from e


async def minify_assets(context: BuildContext) -> None:
    config = context.config
    jobs: list[tuple[Callable[[Path], object], tuple[str, ...]]] = [
        (minify_script, SCRIPT_SUFFIXES),
        (minify_stylesheet, STYLE_SUFFIXES),
        (
            partial(minify_document, remove_comments=config.get("MinifyHtmlComments", True)),
            DOCUMENT_SUFFIXES,
        ),
    ]
    if config.get("MinifyImages", True):
        jobs.append((minify_image, tuple(IMAGE_FORMATS)))

    files = list_files(context.build_path)
    tasks = [
        _minify(func, path, context.build_path)
        for func, suffixes in jobs
        for path in files
        if path.suffix.lower() in suffixes
    ]
    await asyncio.gather(*tasks)
    log.dim(f"minify: {len(tasks)} files")


BUILD_STEP = BuildStep("minify", 950_000, False, minify_assets)
