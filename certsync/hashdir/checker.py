"""Decides whether a target directory already matches a DesiredState."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from certsync.hashdir.compare import content_differs, files_differ
from certsync.hashdir.diagnostics import Diagnostics
from certsync.hashdir.errors import SyncError
from certsync.hashdir.listing import list_target
from certsync.hashdir.models import BUNDLE_NAMES, DesiredState

logger = logging.getLogger(__name__)


def ensure_target_dir(target: Path) -> None:
    """Create the target directory (0755) if it does not exist yet."""
    if target.is_dir():
        return
    try:
        target.mkdir(mode=0o755, parents=True)
    except OSError as e:
        raise SyncError("create target", target, e) from e


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _links_current(target: Path, file: str, link: str) -> bool:
    lpath = target / link
    return lpath.is_symlink() and os.readlink(lpath) == file


def in_sync(
    desired: DesiredState,
    target_dir: str | Path,
    diagnostics: Diagnostics | None = None,
) -> bool:
    """Return True if *target_dir* already satisfies *desired*.

    Rules are checked cheapest first and the first failing rule decides;
    its reason is recorded on *diagnostics*. Creates the target directory
    when it is missing.
    """
    target = Path(target_dir)
    source = Path(desired.source_dir)
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    ensure_target_dir(target)

    listing = list_target(target)
    managed = desired.managed_paths()

    if desired.options.purge:
        expected = desired.expected_file_count()
        if len(listing.files) != expected:
            diagnostics.info(
                f"Different number of files from {source} to {target} "
                f"({len(listing.files)} present, {expected} expected)"
            )
            return False
        if listing.directories != set(desired.directories):
            diagnostics.info(f"{source} directory tree differs from {target}")
            return False

    missing = sorted(p for p in managed if not os.path.lexists(target / p))
    if missing:
        diagnostics.info(
            f"Not all files in {source} are found in {target}", missing[0]
        )
        return False

    for rel in sorted(desired.directories):
        if not _is_real_dir(target / rel):
            diagnostics.info(f"{target}/{rel} is not a directory", rel)
            return False

    if not desired.has_certificates:
        stale = [n for n in BUNDLE_NAMES if os.path.lexists(target / n)]
        if stale:
            diagnostics.info(
                f"{target}/{stale[0]} is left over with no managed certificates", stale[0]
            )
            return False
        logger.debug("%s is in sync with %s (no certificates)", target, source)
        return True

    for file, link in desired.certificate_links():
        dest = target / file
        if dest.is_symlink() or not dest.is_file():
            diagnostics.info(f"{dest} is not a regular file", file)
            return False
        if files_differ(source / file, target / file):
            diagnostics.info(
                f"File contents differ between {source} and {target}", file
            )
            return False
        if link != file and not _links_current(target, file, link):
            diagnostics.info(f"File links in {target} are not current", link)
            return False

    if desired.bundle is not None:
        for name in desired.bundle_names():
            path = target / name
            if path.is_symlink() or content_differs(path, desired.bundle.rendered(name)):
                diagnostics.info(f"{target}/{name} is not current", name)
                return False

    logger.debug("%s is in sync with %s", target, source)
    return True
