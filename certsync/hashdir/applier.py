"""Mutates a target directory until it matches a DesiredState."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from pydantic import BaseModel, Field

from certsync.hashdir.checker import ensure_target_dir
from certsync.hashdir.compare import content_differs
from certsync.hashdir.diagnostics import Diagnostics
from certsync.hashdir.errors import SyncError
from certsync.hashdir.labels import NullLabeler, SecurityLabeler
from certsync.hashdir.listing import walk_tree
from certsync.hashdir.models import BUNDLE_NAMES, CANARY_NAME, DesiredState

logger = logging.getLogger(__name__)


class ApplyResult(BaseModel):
    """What a single apply() call changed in the target."""

    purged: list[str] = Field(default_factory=list)
    copied: list[str] = Field(default_factory=list)
    linked: list[str] = Field(default_factory=list)
    bundles_written: list[str] = Field(default_factory=list)
    bundles_removed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


def _remove(path: Path) -> None:
    """Delete a file, symlink or directory tree; already-gone is fine."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        pass


def _purge(
    desired: DesiredState, target: Path, result: ApplyResult, diagnostics: Diagnostics
) -> None:
    managed = desired.managed_paths()
    directories = set(desired.directories)
    for entry in walk_tree(target):
        if entry.kind == "dir" and entry.path in directories:
            continue
        if entry.kind != "dir" and entry.path in managed:
            continue
        path = target / entry.path
        if not os.path.lexists(path):
            continue  # parent directory went first
        diagnostics.info(f"Purging '{path}'", entry.path)
        try:
            _remove(path)
        except OSError as e:
            raise SyncError("purge", path, e) from e
        result.purged.append(entry.path)


def _touch_canary(target: Path) -> None:
    canary = target / CANARY_NAME
    try:
        canary.touch()
        canary.chmod(0o644)
    except OSError as e:
        raise SyncError("touch canary", canary, e) from e


def _make_directories(desired: DesiredState, target: Path) -> None:
    for rel in sorted(desired.directories):
        path = target / rel
        try:
            if path.is_symlink() or (path.exists() and not path.is_dir()):
                _remove(path)
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SyncError("create directory", path, e) from e


def _copy_ownership(src: Path, dest: Path) -> None:
    st = os.stat(src)
    current = os.stat(dest)
    if (current.st_uid, current.st_gid) == (st.st_uid, st.st_gid):
        return
    try:
        os.chown(dest, st.st_uid, st.st_gid)
    except PermissionError as e:
        logger.debug("Could not copy ownership of '%s' to '%s': %s", src, dest, e)


def _write_bundles(
    desired: DesiredState,
    target: Path,
    labeler: SecurityLabeler,
    result: ApplyResult,
    diagnostics: Diagnostics,
) -> None:
    if desired.bundle is None:
        return
    for name in desired.bundle_names():
        path = target / name
        data = desired.bundle.rendered(name)
        if not data.strip():
            diagnostics.warning(f"File '{path}' is empty.", name)
        if not desired.has_certificates:
            continue

        # New bundle files take the label of the directory they land in.
        label = labeler.get_label(path if os.path.lexists(path) else target)
        if path.is_symlink() or content_differs(path, data):
            try:
                if path.is_symlink() or path.is_dir():
                    _remove(path)
                path.write_bytes(data)
                path.chmod(0o644)
            except OSError as e:
                raise SyncError("write bundle", path, e) from e
            result.bundles_written.append(name)
        labeler.set_label(path, label)


def _relink(target: Path, file: str, link: str) -> bool:
    lpath = target / link
    if lpath.is_symlink() and os.readlink(lpath) == file:
        return False
    if os.path.lexists(lpath):
        _remove(lpath)
    os.symlink(file, lpath)
    return True


def _sync_certificates(
    desired: DesiredState,
    source: Path,
    target: Path,
    labeler: SecurityLabeler,
    result: ApplyResult,
    diagnostics: Diagnostics,
) -> None:
    for file, link in desired.certificate_links():
        src = source / file
        dest = target / file
        if not src.is_file():
            diagnostics.warning(
                f"Skipping sync of {dest}: Source no longer exists", file
            )
            result.skipped.append(file)
            continue

        existing = dest.is_file() and not dest.is_symlink()
        label = labeler.get_label(dest if existing else src)
        try:
            # Unlink first so a read-only or wrong-kind entry never blocks the copy.
            if os.path.lexists(dest):
                _remove(dest)
            shutil.copy2(src, dest)
            _copy_ownership(src, dest)
        except FileNotFoundError:
            diagnostics.warning(
                f"Skipping sync of {dest}: Source no longer exists", file
            )
            result.skipped.append(file)
            continue
        except OSError as e:
            raise SyncError("copy", dest, e) from e
        labeler.set_label(dest, label)
        result.copied.append(file)

        if link == file:
            continue
        try:
            if _relink(target, file, link):
                result.linked.append(link)
        except OSError as e:
            raise SyncError("link", target / link, e) from e
        # Symlinks carry their own label, separate from the file's.
        labeler.set_label(target / link, label)


def _remove_bundles(target: Path, result: ApplyResult, diagnostics: Diagnostics) -> None:
    diagnostics.debug(
        f"Removing aggregate PEM files in {target}: No valid managed certificates"
    )
    for name in BUNDLE_NAMES:
        path = target / name
        if not os.path.lexists(path):
            continue
        try:
            _remove(path)
        except OSError as e:
            raise SyncError("remove bundle", path, e) from e
        result.bundles_removed.append(name)


def apply(
    desired: DesiredState,
    target_dir: str | Path,
    source_dir: str | Path | None = None,
    labeler: SecurityLabeler | None = None,
    diagnostics: Diagnostics | None = None,
) -> ApplyResult:
    """Converge *target_dir* to *desired*.

    Steps run in order: purge unmanaged entries (when purging), touch the
    canary, create directories, write bundle files that changed, copy
    certificates and refresh their links, and finally drop bundle files
    when no certificate is managed. A failed step raises SyncError and
    leaves earlier changes in place.
    """
    target = Path(target_dir)
    source = Path(source_dir) if source_dir is not None else Path(desired.source_dir)
    labeler = labeler or NullLabeler()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    result = ApplyResult()

    ensure_target_dir(target)
    if desired.options.purge:
        _purge(desired, target, result, diagnostics)
    _touch_canary(target)
    _make_directories(desired, target)
    _write_bundles(desired, target, labeler, result, diagnostics)
    _sync_certificates(desired, source, target, labeler, result, diagnostics)
    if not desired.has_certificates:
        _remove_bundles(target, result, diagnostics)

    logger.info(
        "'%s' X.509 CA certificates sync'd to '%s' (%d copied, %d purged)",
        source, target, len(result.copied), len(result.purged),
    )
    return result
