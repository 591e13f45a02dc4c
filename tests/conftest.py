"""Shared test fixtures for certsync."""

from __future__ import annotations

import datetime
from collections.abc import Callable
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from OpenSSL import crypto

from certsync.config.models import CertSyncConfig
from certsync.hashdir.labels import NullLabeler
from certsync.hashdir.models import SyncOptions

CertFactory = Callable[..., bytes]


@pytest.fixture(scope="session")
def signing_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def make_cert(signing_key) -> CertFactory:
    """Build a self-signed PEM certificate for *common_name*.

    Certificates built with the same name share a subject hash; the
    random serial keeps their bytes distinct.
    """

    def _make(common_name: str, header: str = "", fmt: str = "pem") -> bytes:
        name = x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "certsync tests"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ])
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(signing_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=365))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(signing_key, hashes.SHA256())
        )
        if fmt == "der":
            return cert.public_bytes(serialization.Encoding.DER)
        return header.encode("ascii") + cert.public_bytes(serialization.Encoding.PEM)

    return _make


def _openssl_hash(data: bytes) -> str:
    filetype = crypto.FILETYPE_PEM if b"-----BEGIN" in data else crypto.FILETYPE_ASN1
    if filetype == crypto.FILETYPE_PEM:
        data = data[data.index(b"-----BEGIN"):]
    return f"{crypto.load_certificate(filetype, data).subject_name_hash():08x}"


@pytest.fixture(scope="session")
def openssl_hash() -> Callable[[bytes], str]:
    """Subject hash as ``openssl x509 -subject_hash`` prints it."""
    return _openssl_hash


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    monkeypatch.delenv("CERTSYNC_CONFIG", raising=False)


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    return tmp_path / "target"


@pytest.fixture
def write_cert(source_dir: Path, make_cert: CertFactory) -> Callable[..., bytes]:
    """Write a generated certificate to ``source_dir/rel`` and return its bytes."""

    def _write(rel: str, common_name: str, header: str = "", fmt: str = "pem") -> bytes:
        data = make_cert(common_name, header=header, fmt=fmt)
        path = source_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return data

    return _write


@pytest.fixture
def options() -> SyncOptions:
    return SyncOptions()


@pytest.fixture
def labeler() -> NullLabeler:
    return NullLabeler()


@pytest.fixture
def sample_config() -> CertSyncConfig:
    return CertSyncConfig()
