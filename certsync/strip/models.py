from pydantic import BaseModel


class StripSource(BaseModel):
    """Stripped content and metadata of a source PEM file."""

    content: bytes
    uid: int
    gid: int
    mode: int
    label: str | None = None


class StripReport(BaseModel):
    source: str
    target: str
    missing: bool = False
    in_sync: bool = False
    changed: bool = False
