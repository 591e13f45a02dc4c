"""Three-phase snapshot / compare / apply orchestration for one target."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pydantic import BaseModel, Field

from certsync.hashdir.applier import ApplyResult, apply
from certsync.hashdir.checker import in_sync
from certsync.hashdir.diagnostics import Diagnostic, Diagnostics
from certsync.hashdir.labels import SecurityLabeler, create_labeler
from certsync.hashdir.models import DesiredState, SyncOptions
from certsync.hashdir.snapshot import snapshot

logger = logging.getLogger(__name__)


class SyncReport(BaseModel):
    """Outcome of one convergence attempt."""

    source: str
    target: str
    in_sync: bool = False
    changed: bool = False
    dry_run: bool = False
    links: dict[str, str] = Field(default_factory=dict)
    result: ApplyResult | None = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    duration: float = 0.0

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity in ("warning", "error")]


class CertDirSync:
    """Keeps *target_dir* a hashed CA directory mirroring *source_dir*.

    ``snapshot()``, ``in_sync()`` and ``apply()`` are the individual
    phases, for callers that drive them on their own; a DesiredState must
    come from a fresh ``snapshot()`` and be used for one cycle only.
    ``converge()`` runs the whole cycle.
    """

    def __init__(
        self,
        source_dir: str | Path,
        target_dir: str | Path,
        options: SyncOptions | None = None,
        labeler: SecurityLabeler | None = None,
    ) -> None:
        self.source_dir = Path(source_dir)
        self.target_dir = Path(target_dir)
        self.options = options or SyncOptions()
        self.labeler = labeler or create_labeler("auto")

    def snapshot(self, diagnostics: Diagnostics | None = None) -> DesiredState:
        return snapshot(self.source_dir, self.options, diagnostics)

    def in_sync(self, desired: DesiredState, diagnostics: Diagnostics | None = None) -> bool:
        return in_sync(desired, self.target_dir, diagnostics)

    def apply(
        self, desired: DesiredState, diagnostics: Diagnostics | None = None
    ) -> ApplyResult:
        return apply(
            desired,
            self.target_dir,
            source_dir=self.source_dir,
            labeler=self.labeler,
            diagnostics=diagnostics,
        )

    def converge(self, *, dry_run: bool = False) -> SyncReport:
        """Snapshot, compare, and apply when out of sync (unless *dry_run*)."""
        start = time.monotonic()
        diagnostics = Diagnostics()

        desired = self.snapshot(diagnostics)
        report = SyncReport(
            source=str(self.source_dir),
            target=str(self.target_dir),
            dry_run=dry_run,
            links=dict(desired.links),
        )
        report.in_sync = self.in_sync(desired, diagnostics)

        if not report.in_sync and not dry_run:
            report.result = self.apply(desired, diagnostics)
            report.changed = True

        report.diagnostics = diagnostics.records
        report.duration = time.monotonic() - start
        return report
