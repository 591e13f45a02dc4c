"""Directory walking shared by the snapshot, compare and apply phases."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, NamedTuple

from certsync.hashdir.models import TargetListing

EntryKind = Literal["dir", "file", "symlink", "other"]


class TreeEntry(NamedTuple):
    path: str
    kind: EntryKind


def walk_tree(root: str | Path) -> list[TreeEntry]:
    """List every entry below *root*, sorted by relative posix path.

    Symlinks are reported as such and never followed. Dot-prefixed
    entries (and everything under a dot-prefixed directory) are skipped.
    """
    found: list[TreeEntry] = []

    def _walk(dir_path: str, prefix: str) -> None:
        with os.scandir(dir_path) as it:
            for entry in it:
                if entry.name.startswith("."):
                    continue
                rel = prefix + entry.name
                if entry.is_symlink():
                    found.append(TreeEntry(rel, "symlink"))
                elif entry.is_dir(follow_symlinks=False):
                    found.append(TreeEntry(rel, "dir"))
                    _walk(entry.path, rel + "/")
                elif entry.is_file(follow_symlinks=False):
                    found.append(TreeEntry(rel, "file"))
                else:
                    found.append(TreeEntry(rel, "other"))

    _walk(str(root), "")
    return sorted(found)


def list_target(root: str | Path) -> TargetListing:
    """Split the target tree into directories and everything else."""
    listing = TargetListing()
    for entry in walk_tree(root):
        if entry.kind == "dir":
            listing.directories.add(entry.path)
        else:
            listing.files.add(entry.path)
    return listing


def ancestor_dirs(rel_path: str) -> list[str]:
    """``a/b/c.pem`` -> ``["a", "a/b"]``."""
    parts = rel_path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]
