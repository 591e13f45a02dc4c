"""Single-file PEM header stripping."""

from certsync.strip.models import StripReport, StripSource
from certsync.strip.sync import (
    StripFileSync,
    apply_strip,
    read_source,
    strip_in_sync,
)

__all__ = [
    "StripFileSync",
    "StripReport",
    "StripSource",
    "apply_strip",
    "read_source",
    "strip_in_sync",
]
