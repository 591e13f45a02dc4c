"""Exceptions raised by the certificate directory sync engine."""

from __future__ import annotations

from pathlib import Path


class CertSyncError(Exception):
    """Base class for certsync failures."""


class InvalidSourceError(CertSyncError):
    """The source path is not an existing directory."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(f"'{self.path}' is not a valid directory.")


class MissingSourceError(CertSyncError):
    """A required source file does not exist."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(f"Source file '{self.path}' does not exist")


class CertificateParseError(CertSyncError):
    """Wraps the parser exception for a file that is not an X.509 certificate."""

    def __init__(self, path: str, cause: Exception) -> None:
        self.path = path
        super().__init__(f"'{path}' does not look like an X.509 certificate: {cause}")
        self.__cause__ = cause


class SyncError(CertSyncError):
    """Wraps an I/O failure with the phase and path it happened in."""

    def __init__(self, phase: str, path: str | Path, cause: Exception) -> None:
        self.phase = phase
        self.path = str(path)
        super().__init__(f"{phase} failed for '{self.path}': {cause}")
        self.__cause__ = cause
