"""Mandatory access control labels (SELinux contexts) for synced files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

SELINUX_XATTR = "security.selinux"
_SELINUXFS = Path("/sys/fs/selinux")

LabelMode = Literal["auto", "selinux", "none"]


@runtime_checkable
class SecurityLabeler(Protocol):
    """Reads and writes the security label of a path, never following symlinks."""

    def get_label(self, path: str | Path) -> str | None: ...

    def set_label(self, path: str | Path, label: str | None) -> bool: ...


class NullLabeler:
    """Labeler for platforms without mandatory access control."""

    def get_label(self, path: str | Path) -> str | None:
        return None

    def set_label(self, path: str | Path, label: str | None) -> bool:
        return False


class SELinuxLabeler:
    """Copies SELinux contexts through the ``security.selinux`` xattr."""

    @staticmethod
    def available() -> bool:
        return hasattr(os, "getxattr") and (_SELINUXFS / "enforce").exists()

    def get_label(self, path: str | Path) -> str | None:
        try:
            raw = os.getxattr(path, SELINUX_XATTR, follow_symlinks=False)
        except OSError as e:
            logger.debug("Could not get selinux context for '%s': %s", path, e)
            return None
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace") or None

    def set_label(self, path: str | Path, label: str | None) -> bool:
        if not label:
            return False
        try:
            os.setxattr(
                path, SELINUX_XATTR, label.encode("utf-8") + b"\x00", follow_symlinks=False
            )
        except OSError as e:
            logger.debug("Could not set selinux context on '%s': %s", path, e)
            return False
        return True


def create_labeler(mode: LabelMode = "auto") -> SecurityLabeler:
    """Pick a labeler: ``auto`` uses SELinux only when selinuxfs is mounted."""
    if mode == "selinux":
        return SELinuxLabeler()
    if mode == "none":
        return NullLabeler()
    if mode == "auto":
        return SELinuxLabeler() if SELinuxLabeler.available() else NullLabeler()
    raise ValueError(f"Unknown label mode: {mode}")
