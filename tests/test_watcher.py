"""Tests for certsync.watch: debounced re-sync on source changes."""

from __future__ import annotations

import time
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileOpenedEvent

from certsync.hashdir import CertDirSync, NullLabeler
from certsync.watch import SourceWatcher
from certsync.watch.watcher import _DebouncedHandler


class CountingSync:
    """Stands in for CertDirSync; counts converge() calls."""

    def __init__(self, source_dir: Path, fail: bool = False) -> None:
        self.source_dir = source_dir
        self.calls = 0
        self.fail = fail

    def converge(self, *, dry_run: bool = False):
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")
        return f"report-{self.calls}"


def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


# ── event filtering ──────────────────────────────────────────────────


class TestDebouncedHandler:
    def test_relevant_event_schedules(self, tmp_path: Path):
        fired: list[int] = []
        handler = _DebouncedHandler(tmp_path, lambda: fired.append(1))
        handler.on_any_event(FileModifiedEvent(str(tmp_path / "a.pem")))
        assert fired == [1]

    def test_hidden_paths_ignored(self, tmp_path: Path):
        fired: list[int] = []
        handler = _DebouncedHandler(tmp_path, lambda: fired.append(1))
        handler.on_any_event(FileCreatedEvent(str(tmp_path / ".swp")))
        handler.on_any_event(FileCreatedEvent(str(tmp_path / ".git" / "index")))
        assert fired == []

    def test_open_events_ignored(self, tmp_path: Path):
        fired: list[int] = []
        handler = _DebouncedHandler(tmp_path, lambda: fired.append(1))
        handler.on_any_event(FileOpenedEvent(str(tmp_path / "a.pem")))
        assert fired == []


# ── SourceWatcher ────────────────────────────────────────────────────


class TestSourceWatcher:
    def test_run_once_reports(self, tmp_path: Path):
        reports = []
        sync = CountingSync(tmp_path)
        watcher = SourceWatcher(sync, debounce_seconds=0.1, on_report=reports.append)
        assert watcher.run_once() == "report-1"
        assert reports == ["report-1"]
        assert watcher.last_report == "report-1"

    def test_burst_collapses_into_one_sync(self, tmp_path: Path):
        sync = CountingSync(tmp_path)
        watcher = SourceWatcher(sync, debounce_seconds=0.2)
        for _ in range(5):
            watcher._schedule()
        assert _wait_for(lambda: sync.calls == 1)
        time.sleep(0.4)
        assert sync.calls == 1

    def test_failed_sync_does_not_kill_timer(self, tmp_path: Path, caplog):
        sync = CountingSync(tmp_path, fail=True)
        watcher = SourceWatcher(sync, debounce_seconds=0.05)
        watcher._schedule()
        assert _wait_for(lambda: sync.calls == 1)
        assert _wait_for(lambda: "failed" in caplog.text)
        watcher._schedule()
        assert _wait_for(lambda: sync.calls == 2)

    def test_stop_cancels_pending_sync(self, tmp_path: Path):
        sync = CountingSync(tmp_path)
        watcher = SourceWatcher(sync, debounce_seconds=0.3)
        watcher._schedule()
        watcher.stop()
        time.sleep(0.5)
        assert sync.calls == 0

    def test_syncs_after_file_change(self, source_dir: Path, target_dir: Path, write_cert):
        write_cert("a.pem", "Root A")
        sync = CertDirSync(source_dir, target_dir, labeler=NullLabeler())
        watcher = SourceWatcher(sync, debounce_seconds=0.1)
        watcher.run_once()
        watcher.start()
        try:
            time.sleep(0.3)
            write_cert("b.pem", "Root B")
            assert _wait_for(lambda: (target_dir / "b.pem").exists()), "b.pem never synced"
        finally:
            watcher.stop()
