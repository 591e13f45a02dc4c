"""Copy a PEM file with everything outside its certificate blocks removed."""

from __future__ import annotations

import grp
import logging
import os
import pwd
import stat
from pathlib import Path

from certsync.config.models import StripSettings
from certsync.hashdir.compare import content_differs
from certsync.hashdir.errors import MissingSourceError, SyncError
from certsync.hashdir.labels import NullLabeler, SecurityLabeler
from certsync.hashdir.pem import strip_x509_headers
from certsync.strip.models import StripReport, StripSource

logger = logging.getLogger(__name__)


def _to_uid(value: str | int) -> int:
    if isinstance(value, int) or value.isdigit():
        return int(value)
    try:
        return pwd.getpwnam(value).pw_uid
    except KeyError:
        raise ValueError(f"Unknown user '{value}'") from None


def _to_gid(value: str | int) -> int:
    if isinstance(value, int) or value.isdigit():
        return int(value)
    try:
        return grp.getgrnam(value).gr_gid
    except KeyError:
        raise ValueError(f"Unknown group '{value}'") from None


def read_source(source: str | Path, labeler: SecurityLabeler) -> StripSource | None:
    """Stripped content plus ownership, mode and label of *source*, or None if absent."""
    path = Path(source)
    if not path.exists():
        return None
    try:
        st = path.stat()
        text = path.read_bytes().decode("latin-1")
    except OSError as e:
        raise SyncError("read source", path, e) from e
    return StripSource(
        content=strip_x509_headers(text).encode("latin-1"),
        uid=st.st_uid,
        gid=st.st_gid,
        mode=stat.S_IMODE(st.st_mode),
        label=labeler.get_label(path),
    )


def desired_attributes(
    src_info: StripSource, settings: StripSettings
) -> tuple[int, int, int]:
    """(uid, gid, mode) for the target: explicit settings win over the source's."""
    uid = _to_uid(settings.owner) if settings.owner is not None else src_info.uid
    gid = _to_gid(settings.group) if settings.group is not None else src_info.gid
    mode = int(settings.mode, 8) if settings.mode is not None else src_info.mode
    return uid, gid, mode


def strip_in_sync(
    src_info: StripSource,
    target: str | Path,
    settings: StripSettings,
    labeler: SecurityLabeler,
) -> bool:
    path = Path(target)
    if not path.exists():
        return False

    uid, gid, mode = desired_attributes(src_info, settings)
    st = path.stat()
    if st.st_uid != uid or st.st_gid != gid:
        logger.debug("Ownership of %s differs", path)
        return False
    if stat.S_IMODE(st.st_mode) != mode:
        logger.debug("Mode of %s differs", path)
        return False
    if src_info.label is not None and labeler.get_label(path) != src_info.label:
        logger.debug("SELinux context of %s differs", path)
        return False
    return not content_differs(path, src_info.content)


def apply_strip(
    src_info: StripSource,
    target: str | Path,
    settings: StripSettings,
    labeler: SecurityLabeler,
) -> None:
    path = Path(target)
    uid, gid, mode = desired_attributes(src_info, settings)
    try:
        if content_differs(path, src_info.content):
            path.write_bytes(src_info.content)
        path.chmod(mode)
    except OSError as e:
        raise SyncError("write stripped copy", path, e) from e

    st = path.stat()
    if (st.st_uid, st.st_gid) != (uid, gid):
        try:
            os.chown(path, uid, gid)
        except PermissionError as e:
            logger.warning("Could not set ownership of '%s' to %d:%d: %s", path, uid, gid, e)
    labeler.set_label(path, src_info.label)


class StripFileSync:
    """Keeps *target* equal to the header-stripped content of *source*."""

    def __init__(
        self,
        source: str | Path,
        target: str | Path,
        settings: StripSettings | None = None,
        labeler: SecurityLabeler | None = None,
    ) -> None:
        self.source = Path(source)
        self.target = Path(target)
        self.settings = settings or StripSettings()
        self.labeler = labeler or NullLabeler()

    def converge(self, *, dry_run: bool = False) -> StripReport:
        """Raises MissingSourceError if the source is absent and fail_if_missing is set."""
        report = StripReport(source=str(self.source), target=str(self.target))
        src_info = read_source(self.source, self.labeler)
        if src_info is None:
            if self.settings.fail_if_missing:
                raise MissingSourceError(self.source)
            logger.debug("Source %s is absent, nothing to do", self.source)
            report.missing = True
            report.in_sync = True
            return report

        report.in_sync = strip_in_sync(src_info, self.target, self.settings, self.labeler)
        if not report.in_sync and not dry_run:
            apply_strip(src_info, self.target, self.settings, self.labeler)
            report.changed = True
        return report
