"""Assigns collision-free ``<subject_hash>.<n>`` link names to certificates."""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable

from certsync.hashdir.models import CertificateEntry

_HASHED_NAME_RE = re.compile(r"([0-9a-f]{8})\.(\d+)")


def parse_hashed_name(filename: str) -> tuple[str, int] | None:
    """Split ``4a44b594.0`` into ``("4a44b594", 0)``; None for other names."""
    m = _HASHED_NAME_RE.fullmatch(filename)
    if m is None:
        return None
    return m.group(1), int(m.group(2))


def own_suffix(path: str, subject_hash: str) -> int | None:
    """Suffix a root-level file already encodes for its own hash, if any."""
    if "/" in path:
        return None
    parsed = parse_hashed_name(path)
    if parsed is None or parsed[0] != subject_hash:
        return None
    return parsed[1]


class SuffixArena:
    """Tracks used suffixes per hash and hands out the smallest free one.

    Names in *taken_names* (managed files at the target root) are never
    handed out as links, so a link can't clobber another certificate.
    """

    def __init__(self, taken_names: Iterable[str] = ()) -> None:
        self._used: dict[str, set[int]] = defaultdict(set)
        self._next: dict[str, int] = defaultdict(int)
        self._taken = set(taken_names)

    def reserve(self, subject_hash: str, suffix: int) -> bool:
        if suffix in self._used[subject_hash]:
            return False
        self._used[subject_hash].add(suffix)
        return True

    def allocate(self, subject_hash: str) -> int:
        n = self._next[subject_hash]
        used = self._used[subject_hash]
        while n in used or f"{subject_hash}.{n}" in self._taken:
            n += 1
        used.add(n)
        self._next[subject_hash] = n + 1
        return n


def index_certificates(entries: Iterable[CertificateEntry]) -> dict[str, str]:
    """Map each certificate's relative path to its hashed link name.

    Entries are processed in lexicographic path order. A root-level file
    already named ``<hash>.<n>`` keeps that name; every other entry gets
    the smallest unused suffix for its hash, in scan order. Renaming or
    moving files can therefore reshuffle suffixes.
    """
    ordered = sorted(entries, key=lambda e: e.path)
    arena = SuffixArena(e.path for e in ordered if "/" not in e.path)
    links: dict[str, str] = {}

    for entry in ordered:
        if entry.suffix is not None and arena.reserve(entry.subject_hash, entry.suffix):
            links[entry.path] = f"{entry.subject_hash}.{entry.suffix}"

    for entry in ordered:
        if entry.path in links:
            continue
        links[entry.path] = f"{entry.subject_hash}.{arena.allocate(entry.subject_hash)}"

    return {e.path: links[e.path] for e in ordered}
