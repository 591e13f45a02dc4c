"""Data models for the hashed CA directory sync engine."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from certsync.hashdir.pem import strip_x509_headers

_HASH_RE = re.compile(r"[0-9a-f]{8}")

BUNDLE_NAME = "cacerts.pem"
STRIPPED_BUNDLE_NAME = "cacerts_no_headers.pem"
BUNDLE_NAMES: tuple[str, ...] = (BUNDLE_NAME, STRIPPED_BUNDLE_NAME)

CANARY_NAME = ".sync_updated"


def is_hidden(rel_path: str) -> bool:
    """True when any component of a relative path is dot-prefixed.

    Hidden entries are skipped when scanning the source and when listing
    or purging the target. The canary lives there.
    """
    return any(part.startswith(".") for part in rel_path.split("/"))


class SyncOptions(BaseModel):
    """Generation and purge policy for one target directory."""

    model_config = ConfigDict(frozen=True)

    purge: bool = True
    strip_headers: bool = False
    generate_bundle: bool = True


@dataclass(frozen=True)
class CertificateEntry:
    """A parsed certificate file found in the source tree."""

    path: str
    content: bytes
    subject_hash: str
    suffix: int | None = None

    def __post_init__(self) -> None:
        if not _HASH_RE.fullmatch(self.subject_hash):
            raise ValueError(f"subject_hash must be 8-char lowercase hex, got {self.subject_hash!r}")
        if self.suffix is not None and self.suffix < 0:
            raise ValueError(f"suffix must be non-negative, got {self.suffix}")


@dataclass(frozen=True)
class AggregateBundle:
    """Concatenated certificate payload and its two renderings."""

    raw: bytes
    strip_headers: bool = False

    @property
    def stripped(self) -> bytes:
        text = self.raw.decode("latin-1")
        return strip_x509_headers(text).encode("latin-1")

    def rendered(self, name: str) -> bytes:
        """Return the bytes that bundle file *name* should contain."""
        if name == STRIPPED_BUNDLE_NAME:
            return self.stripped
        if name == BUNDLE_NAME:
            return self.stripped if self.strip_headers else self.raw
        raise KeyError(f"Not a bundle file: {name}")


@dataclass(frozen=True)
class DesiredState:
    """Everything the compare and apply phases need, computed once per cycle."""

    source_dir: str
    links: Mapping[str, str]
    directories: frozenset[str] = frozenset()
    bundle: AggregateBundle | None = None
    options: SyncOptions = field(default_factory=SyncOptions)

    def __post_init__(self) -> None:
        if not isinstance(self.links, MappingProxyType):
            object.__setattr__(self, "links", MappingProxyType(dict(self.links)))

    def certificate_links(self) -> list[tuple[str, str]]:
        """(file, link) pairs for certificates, bundle entries excluded."""
        return [(f, link) for f, link in self.links.items() if f not in BUNDLE_NAMES]

    def bundle_names(self) -> list[str]:
        return [f for f in self.links if f in BUNDLE_NAMES]

    @property
    def has_certificates(self) -> bool:
        return any(f not in BUNDLE_NAMES for f in self.links)

    def managed_paths(self) -> set[str]:
        """Relative paths that must exist in the target.

        Bundle files are only expected while at least one certificate is
        managed; an empty mapping means the bundles must be removed.
        """
        paths = {p for pair in self.links.items() for p in pair}
        if not self.has_certificates:
            paths -= set(BUNDLE_NAMES)
        return paths

    def expected_file_count(self) -> int:
        return len(self.managed_paths())


@dataclass
class TargetListing:
    """Current non-directory entries and directories of a target tree."""

    files: set[str] = field(default_factory=set)
    directories: set[str] = field(default_factory=set)
