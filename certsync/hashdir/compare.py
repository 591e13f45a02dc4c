"""Chunked byte-for-byte file comparison."""

from __future__ import annotations

import io
import os
from pathlib import Path

CHUNK_SIZE = 512


def _streams_differ(a: io.BufferedIOBase, b: io.BufferedIOBase) -> bool:
    while True:
        chunk = a.read(CHUNK_SIZE)
        if chunk != b.read(CHUNK_SIZE):
            return True
        if not chunk:
            return False


def files_differ(src: str | Path, dest: str | Path) -> bool:
    """Return True if either path is not a regular file or their contents differ.

    Sizes are compared first; equal-sized files are read 512 bytes at a
    time and the scan stops at the first mismatching chunk.
    """
    src, dest = Path(src), Path(dest)
    if not (src.is_file() and dest.is_file()):
        return True
    if os.stat(src).st_size != os.stat(dest).st_size:
        return True

    with open(src, "rb") as s_file, open(dest, "rb") as d_file:
        return _streams_differ(s_file, d_file)


def content_differs(path: str | Path, data: bytes) -> bool:
    """Like files_differ(), with the expected content held in memory."""
    path = Path(path)
    if not path.is_file():
        return True
    if os.stat(path).st_size != len(data):
        return True

    with open(path, "rb") as f:
        return _streams_differ(f, io.BytesIO(data))
