"""Builds the DesiredState for a target from the contents of a source tree."""

from __future__ import annotations

import logging
from pathlib import Path

from certsync.hashdir.certificate import parse_certificate, subject_hash
from certsync.hashdir.diagnostics import Diagnostics
from certsync.hashdir.errors import CertificateParseError, InvalidSourceError, SyncError
from certsync.hashdir.indexer import index_certificates, own_suffix
from certsync.hashdir.listing import ancestor_dirs, walk_tree
from certsync.hashdir.models import (
    BUNDLE_NAME,
    BUNDLE_NAMES,
    AggregateBundle,
    CertificateEntry,
    DesiredState,
    SyncOptions,
)

logger = logging.getLogger(__name__)


def _candidate_files(source: Path) -> list[str]:
    """Regular files to parse: no symlinks, no root-level bundle files."""
    return [
        entry.path
        for entry in walk_tree(source)
        if entry.kind == "file" and entry.path not in BUNDLE_NAMES
    ]


def _read(source: Path, rel: str) -> bytes:
    try:
        return (source / rel).read_bytes()
    except OSError as e:
        raise SyncError("snapshot", source / rel, e) from e


def load_entries(
    source: Path, diagnostics: Diagnostics
) -> list[CertificateEntry]:
    """Parse every candidate file, skipping (with a warning) non-certificates."""
    entries: list[CertificateEntry] = []
    for rel in _candidate_files(source):
        raw = _read(source, rel)
        try:
            cert = parse_certificate(raw, rel)
        except CertificateParseError:
            diagnostics.warning(
                f"File '{rel}' does not look like an X.509 certificate, skipping", rel
            )
            continue
        cert_hash = subject_hash(cert)
        entries.append(
            CertificateEntry(
                path=rel,
                content=raw,
                subject_hash=cert_hash,
                suffix=own_suffix(rel, cert_hash),
            )
        )
    return entries


def _concat(entries: list[CertificateEntry]) -> bytes:
    parts: list[bytes] = []
    for entry in entries:
        parts.append(entry.content)
        if entry.content and not entry.content.endswith(b"\n"):
            parts.append(b"\n")
    return b"".join(parts)


def snapshot(
    source_dir: str | Path,
    options: SyncOptions | None = None,
    diagnostics: Diagnostics | None = None,
) -> DesiredState:
    """Scan *source_dir* and compute what the target should look like.

    Certificates are read in lexicographic path order. With bundle
    generation on, their raw bytes are concatenated into the aggregate
    bundle; with it off, a ``cacerts.pem`` at the source root is passed
    through instead. Nothing in the target is touched.

    Raises:
        InvalidSourceError: if *source_dir* is not a directory.
    """
    source = Path(source_dir)
    if not source.is_dir():
        raise InvalidSourceError(source_dir)
    options = options or SyncOptions()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    entries = load_entries(source, diagnostics)
    links = index_certificates(entries)

    bundle: AggregateBundle | None = None
    if options.generate_bundle:
        bundle = AggregateBundle(_concat(entries), options.strip_headers)
    else:
        source_bundle = source / BUNDLE_NAME
        if source_bundle.is_file() and not source_bundle.is_symlink():
            bundle = AggregateBundle(_read(source, BUNDLE_NAME), options.strip_headers)
    if bundle is not None:
        for name in BUNDLE_NAMES:
            links[name] = name

    directories = frozenset(d for e in entries for d in ancestor_dirs(e.path))
    logger.debug(
        "snapshot of %s: %d certificate(s), %d director(ies)",
        source, len(entries), len(directories),
    )
    return DesiredState(
        source_dir=str(source),
        links=links,
        directories=directories,
        bundle=bundle,
        options=options,
    )
