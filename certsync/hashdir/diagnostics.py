"""Structured diagnostics collected during a sync cycle."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict

Severity = Literal["debug", "info", "warning", "error"]

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Diagnostic(BaseModel):
    """A single note about a file, recorded by one of the sync phases."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    message: str
    path: str | None = None


class Diagnostics:
    """Collects diagnostics and forwards each one to a logger.

    Every phase accepts an optional collector so callers (and tests) can
    inspect what happened without capturing the logging subsystem.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("certsync.hashdir")
        self._records: list[Diagnostic] = []

    def add(self, severity: Severity, message: str, path: str | None = None) -> Diagnostic:
        record = Diagnostic(severity=severity, message=message, path=path)
        self._records.append(record)
        self._logger.log(_LEVELS[severity], message)
        return record

    def debug(self, message: str, path: str | None = None) -> Diagnostic:
        return self.add("debug", message, path)

    def info(self, message: str, path: str | None = None) -> Diagnostic:
        return self.add("info", message, path)

    def warning(self, message: str, path: str | None = None) -> Diagnostic:
        return self.add("warning", message, path)

    def error(self, message: str, path: str | None = None) -> Diagnostic:
        return self.add("error", message, path)

    @property
    def records(self) -> list[Diagnostic]:
        return list(self._records)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [r for r in self._records if r.severity in ("warning", "error")]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))
