"""Hashed CA directory sync engine."""

from certsync.hashdir.applier import ApplyResult, apply
from certsync.hashdir.checker import in_sync
from certsync.hashdir.compare import content_differs, files_differ
from certsync.hashdir.diagnostics import Diagnostic, Diagnostics
from certsync.hashdir.engine import CertDirSync, SyncReport
from certsync.hashdir.errors import (
    CertificateParseError,
    CertSyncError,
    InvalidSourceError,
    MissingSourceError,
    SyncError,
)
from certsync.hashdir.indexer import index_certificates
from certsync.hashdir.labels import (
    NullLabeler,
    SecurityLabeler,
    SELinuxLabeler,
    create_labeler,
)
from certsync.hashdir.models import (
    BUNDLE_NAME,
    BUNDLE_NAMES,
    CANARY_NAME,
    STRIPPED_BUNDLE_NAME,
    AggregateBundle,
    CertificateEntry,
    DesiredState,
    SyncOptions,
)
from certsync.hashdir.pem import strip_x509_headers
from certsync.hashdir.snapshot import snapshot

__all__ = [
    "AggregateBundle",
    "ApplyResult",
    "BUNDLE_NAME",
    "BUNDLE_NAMES",
    "CANARY_NAME",
    "CertDirSync",
    "CertSyncError",
    "CertificateEntry",
    "CertificateParseError",
    "DesiredState",
    "Diagnostic",
    "Diagnostics",
    "InvalidSourceError",
    "MissingSourceError",
    "NullLabeler",
    "SELinuxLabeler",
    "STRIPPED_BUNDLE_NAME",
    "SecurityLabeler",
    "SyncError",
    "SyncOptions",
    "SyncReport",
    "apply",
    "content_differs",
    "create_labeler",
    "files_differ",
    "in_sync",
    "index_certificates",
    "snapshot",
    "strip_x509_headers",
]
