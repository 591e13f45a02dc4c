"""certsync - keep OpenSSL hashed CA directories in sync with a certificate source."""

from certsync.config import CertSyncConfig, load_config
from certsync.hashdir import CertDirSync, SyncOptions, SyncReport
from certsync.strip import StripFileSync
from certsync.watch import SourceWatcher

__version__ = "0.1.0"

__all__ = [
    "CertDirSync",
    "CertSyncConfig",
    "SourceWatcher",
    "StripFileSync",
    "SyncOptions",
    "SyncReport",
    "load_config",
]
