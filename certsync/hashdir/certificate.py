"""X.509 parsing and OpenSSL subject hashing."""

from __future__ import annotations

import cryptography.x509 as c_x509
from OpenSSL import crypto  # type: ignore

from certsync.hashdir.errors import CertificateParseError
from certsync.hashdir.pem import first_certificate_block


def parse_certificate(raw: bytes, path: str = "<bytes>") -> c_x509.Certificate:
    """Load the first certificate found in *raw*.

    PEM input may carry arbitrary text around the certificate block; input
    without a PEM block is tried as DER.

    Raises:
        CertificateParseError: if no certificate can be loaded.
    """
    block = first_certificate_block(raw.decode("latin-1"))
    try:
        if block is not None:
            return c_x509.load_pem_x509_certificate(block.encode("ascii"))
        return c_x509.load_der_x509_certificate(raw)
    except (ValueError, UnicodeEncodeError) as e:
        raise CertificateParseError(path, e) from e


def subject_hash(cert: c_x509.Certificate) -> str:
    """Return the OpenSSL subject hash (``openssl x509 -subject_hash``)."""
    return f"{crypto.X509.from_cryptography(cert).subject_name_hash():08x}"
