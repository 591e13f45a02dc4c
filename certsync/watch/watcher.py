"""Re-converges a target whenever its source directory changes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from certsync.hashdir.engine import CertDirSync, SyncReport
from certsync.hashdir.models import is_hidden

logger = logging.getLogger(__name__)


def _is_hidden(path: str, root: Path) -> bool:
    try:
        rel = Path(path).relative_to(root)
    except ValueError:
        return False
    return is_hidden(rel.as_posix())


class _DebouncedHandler(FileSystemEventHandler):
    """Restarts a quiet-period timer on every relevant event."""

    def __init__(self, root: Path, schedule: Callable[[], None]) -> None:
        super().__init__()
        self._root = root
        self._schedule = schedule

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ("opened", "closed_no_write"):
            return
        if _is_hidden(event.src_path, self._root):
            return
        logger.debug("%s: %s", event.event_type, event.src_path)
        self._schedule()


class SourceWatcher:
    """Watches the source of a CertDirSync and converges after changes settle.

    Bursts of events (an editor save, a package update dropping many
    certificates) collapse into one sync once no event arrived for
    *debounce_seconds*. Sync cycles never overlap.
    """

    def __init__(
        self,
        sync: CertDirSync,
        debounce_seconds: float = 2.0,
        on_report: Callable[[SyncReport], None] | None = None,
    ) -> None:
        self._sync = sync
        self._debounce_seconds = debounce_seconds
        self._on_report = on_report
        self._root = Path(sync.source_dir).resolve()
        self._timer_lock = threading.Lock()
        self._sync_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._observer: Observer | None = None
        self._last_report: SyncReport | None = None
        self._handler = _DebouncedHandler(self._root, self._schedule)

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    def run_once(self) -> SyncReport:
        """Run one convergence cycle now."""
        with self._sync_lock:
            report = self._sync.converge()
            self._last_report = report
        if self._on_report is not None:
            self._on_report(report)
        return report

    def _fire(self) -> None:
        with self._timer_lock:
            self._timer = None
        try:
            self.run_once()
        except Exception:
            logger.exception("Sync of %s failed", self._root)

    def _schedule(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def start(self) -> None:
        """Begin watching the source directory recursively."""
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._root), recursive=True)
        self._observer.start()
        logger.info("Watching %s for changes", self._root)

    def stop(self) -> None:
        """Stop watching and drop any pending sync."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching %s", self._root)
