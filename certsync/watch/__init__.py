"""Watch mode: converge again whenever the source changes."""

from certsync.watch.watcher import SourceWatcher

__all__ = ["SourceWatcher"]
