from pydantic import BaseModel, Field, field_validator
from typing import Literal

from certsync.hashdir.models import SyncOptions


class SyncSettings(BaseModel):
    purge: bool = True
    strip_headers: bool = False
    generate_bundle: bool = True
    labels: Literal["auto", "selinux", "none"] = "auto"

    def to_options(self) -> SyncOptions:
        return SyncOptions(
            purge=self.purge,
            strip_headers=self.strip_headers,
            generate_bundle=self.generate_bundle,
        )


class StripSettings(BaseModel):
    fail_if_missing: bool = True
    owner: str | int | None = None
    group: str | int | None = None
    mode: str | None = None

    @field_validator("mode")
    @classmethod
    def _octal_mode(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            value = int(v, 8)
        except ValueError:
            raise ValueError(f"Invalid mode '{v}': expected an octal string like '0644'")
        if not 0 <= value <= 0o7777:
            raise ValueError(f"Invalid mode '{v}'")
        return v


class WatchSettings(BaseModel):
    debounce_seconds: float = Field(default=2.0, gt=0)


class CertSyncConfig(BaseModel):
    sync: SyncSettings = Field(default_factory=SyncSettings)
    strip: StripSettings = Field(default_factory=StripSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
