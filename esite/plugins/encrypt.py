"""
encrypt - encrypt every directory of the output tree marked for encryption.

A directory is marked by placing an empty `.esite-encrypt` file in it. The
marker is removed and each file below the directory is replaced by
`iv || AES-CBC(file)` (PKCS#7 padding, random 16-byte IV). Marked directories
are recorded in context.encrypted_paths so the dev server leaves their
documents alone.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import os
from pathlib import Path

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from esite.build.config import ConfigOption
from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.core.errors import InvalidOption
from esite.core.utils import list_files, log, relative_posix

MARKER = ".esite-encrypt"
KEY_LENGTHS = (16, 24, 32)
IV_LENGTH = 16


def parse_key(value: str) -> bytes:
    """Decode a base64 AES key of 16, 24 or 32 bytes."""
    expected = "a base64 encoded key of byte length 16, 24, or 32"
    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidOption(expected) from None
    if len(key) not in KEY_LENGTHS:
        raise InvalidOption(f"{expected} (current length: {len(key)})")
    return key


OPTIONS = (ConfigOption("EncryptionKey", optional=False, parser=parse_key),)


def encrypt_bytes(key: bytes, plaintext: bytes) -> bytes:
    """AES-CBC with PKCS#7 padding; the random IV is prepended."""
    iv = os.urandom(IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def encrypt_file(key: bytes, path: Path) -> None:
    path.write_bytes(encrypt_bytes(key, path.read_bytes()))


def find_marked_dirs(build_path: Path) -> list[Path]:
    """Directories holding a marker, outermost first, nested ones dropped."""
    marked: list[Path] = []
    for marker in sorted(build_path.rglob(MARKER), key=lambda p: len(p.parts)):
        folder = marker.parent
        if not any(folder == m or m in folder.parents for m in marked):
            marked.append(folder)
    return marked


async def encrypt_marked(context: BuildContext) -> None:
    key: bytes = context.config.get("EncryptionKey")
    build_path = context.build_path

    folders = find_marked_dirs(build_path)
    for marker in build_path.rglob(MARKER):
        marker.unlink()

    for folder in folders:
        prefix = relative_posix(folder, build_path)
        context.encrypted_paths.add(prefix)
        files = list_files(folder)
        await asyncio.gather(*(asyncio.to_thread(encrypt_file, key, path) for path in files))
        log.dim(f"encrypt: {prefix} ({len(files)} files)")


BUILD_STEP = BuildStep("encrypt", 1_000_000, True, encrypt_marked)
