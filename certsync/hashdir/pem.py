"""PEM text helpers: header stripping and certificate block extraction."""

from __future__ import annotations

BEGIN_MARKER = "-----BEGIN CERTIFICATE-----"
END_MARKER = "-----END CERTIFICATE-----"


def _lines(text: str) -> list[str]:
    """Split on "\n" only, dropping a CR before it; other control characters stay in the line."""
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def strip_x509_headers(certs_raw: str) -> str:
    """Keep only the BEGIN/END CERTIFICATE blocks of *certs_raw*.

    Marker lines are kept. Anything outside a block (openssl ``-text``
    dumps, comments, bag attributes) is dropped. A block that never
    closes keeps its lines to the end of the input. Returns ``""`` when
    no block is found, otherwise the kept lines joined with newlines and
    terminated by one.
    """
    cert_lines: list[str] = []
    in_block = False
    for line in _lines(certs_raw):
        if in_block:
            cert_lines.append(line)
            if line == END_MARKER:
                in_block = False
        elif line == BEGIN_MARKER:
            in_block = True
            cert_lines.append(line)

    if not cert_lines:
        return ""
    return "\n".join(cert_lines) + "\n"


def certificate_blocks(certs_raw: str) -> list[str]:
    """Split *certs_raw* into complete BEGIN..END blocks, in order."""
    blocks: list[str] = []
    current: list[str] = []
    for line in _lines(strip_x509_headers(certs_raw)):
        current.append(line)
        if line == END_MARKER:
            blocks.append("\n".join(current) + "\n")
            current = []
    return blocks


def first_certificate_block(certs_raw: str) -> str | None:
    """Return the first complete certificate block, or None."""
    blocks = certificate_blocks(certs_raw)
    return blocks[0] if blocks else None
