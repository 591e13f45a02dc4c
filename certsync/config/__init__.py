from .loader import load_config
from .models import (
    CertSyncConfig,
    StripSettings,
    SyncSettings,
    WatchSettings,
)

__all__ = [
    "CertSyncConfig",
    "StripSettings",
    "SyncSettings",
    "WatchSettings",
    "load_config",
]
