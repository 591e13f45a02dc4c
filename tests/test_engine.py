"""End-to-end tests for CertDirSync: snapshot, in_sync and apply together."""

import os

import pytest

from certsync.hashdir import (
    BUNDLE_NAME,
    STRIPPED_BUNDLE_NAME,
    CertDirSync,
    InvalidSourceError,
    NullLabeler,
    SyncOptions,
)


def _sync(source_dir, target_dir, **opts) -> CertDirSync:
    return CertDirSync(source_dir, target_dir, SyncOptions(**opts), labeler=NullLabeler())


# ── reference scenarios ──────────────────────────────────────────────


class TestScenarios:
    def test_single_certificate(self, source_dir, target_dir, write_cert, openssl_hash):
        pem = write_cert("cert1.pem", "Root A")
        link = f"{openssl_hash(pem)}.0"
        syncer = _sync(source_dir, target_dir)

        desired = syncer.snapshot()
        assert dict(desired.links) == {
            "cert1.pem": link,
            BUNDLE_NAME: BUNDLE_NAME,
            STRIPPED_BUNDLE_NAME: STRIPPED_BUNDLE_NAME,
        }
        assert syncer.in_sync(desired) is False
        syncer.apply(desired)

        assert (target_dir / "cert1.pem").read_bytes() == pem
        assert os.readlink(target_dir / link) == "cert1.pem"
        assert (target_dir / BUNDLE_NAME).is_file()

    def test_two_certificates_same_hash(self, source_dir, target_dir, write_cert, openssl_hash):
        h = openssl_hash(write_cert("first.pem", "Shared Root"))
        write_cert("second.pem", "Shared Root")
        syncer = _sync(source_dir, target_dir)
        syncer.converge()

        assert os.readlink(target_dir / f"{h}.0") == "first.pem"
        assert os.readlink(target_dir / f"{h}.1") == "second.pem"

    def test_empty_source_removes_bundle(self, source_dir, target_dir):
        target_dir.mkdir()
        (target_dir / BUNDLE_NAME).write_text("stale\n")
        syncer = _sync(source_dir, target_dir)

        desired = syncer.snapshot()
        assert dict(desired.links) == {
            BUNDLE_NAME: BUNDLE_NAME,
            STRIPPED_BUNDLE_NAME: STRIPPED_BUNDLE_NAME,
        }
        report = syncer.converge()
        assert report.changed
        assert not (target_dir / BUNDLE_NAME).exists()
        assert any("is empty" in w.message for w in report.warnings)

    def test_stray_file_purged(self, source_dir, target_dir, write_cert):
        write_cert("cert1.pem", "Root A")
        syncer = _sync(source_dir, target_dir)
        syncer.converge()
        (target_dir / "stray.txt").write_text("x")

        desired = syncer.snapshot()
        assert syncer.in_sync(desired) is False
        syncer.apply(desired)

        assert not (target_dir / "stray.txt").exists()
        assert (target_dir / "cert1.pem").exists()
        assert os.path.islink(target_dir / desired.links["cert1.pem"])


# ── idempotence ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "opts",
    [
        {},
        {"purge": False},
        {"strip_headers": True},
        {"generate_bundle": False},
    ],
)
def test_apply_then_in_sync(source_dir, target_dir, write_cert, opts):
    write_cert("a.pem", "Root A", header="subject=CN = Root A\n")
    write_cert("b.pem", "Shared")
    write_cert("nested/c.pem", "Shared")
    write_cert("nested/deeper/d.der", "Binary", fmt="der")
    (source_dir / "notes.txt").write_text("ignore me")
    syncer = _sync(source_dir, target_dir, **opts)

    syncer.apply(syncer.snapshot())
    assert syncer.in_sync(syncer.snapshot()) is True


def test_second_converge_is_noop(source_dir, target_dir, write_cert):
    write_cert("a.pem", "Root A")
    syncer = _sync(source_dir, target_dir)
    first = syncer.converge()
    second = syncer.converge()
    assert first.changed and not first.in_sync
    assert second.in_sync and not second.changed
    assert second.result is None


def test_removed_certificate_drops_link(source_dir, target_dir, write_cert):
    write_cert("a.pem", "Root A")
    write_cert("b.pem", "Root B")
    syncer = _sync(source_dir, target_dir)
    first = syncer.converge()
    (source_dir / "b.pem").unlink()

    syncer.converge()

    assert not (target_dir / "b.pem").exists()
    assert not os.path.lexists(target_dir / first.links["b.pem"])
    assert syncer.in_sync(syncer.snapshot())


# ── converge options ─────────────────────────────────────────────────


class TestConverge:
    def test_dry_run_changes_nothing(self, source_dir, target_dir, write_cert):
        write_cert("a.pem", "Root A")
        report = _sync(source_dir, target_dir).converge(dry_run=True)
        assert report.dry_run
        assert not report.in_sync
        assert not report.changed
        assert list(target_dir.iterdir()) == []

    def test_report_fields(self, source_dir, target_dir, write_cert):
        write_cert("a.pem", "Root A")
        (source_dir / "junk.txt").write_text("x")
        report = _sync(source_dir, target_dir).converge()
        assert report.source == str(source_dir)
        assert report.target == str(target_dir)
        assert "a.pem" in report.links
        assert report.result.copied == ["a.pem"]
        assert [w.path for w in report.warnings] == ["junk.txt"]
        assert report.duration >= 0

    def test_invalid_source(self, tmp_path, target_dir):
        with pytest.raises(InvalidSourceError):
            _sync(tmp_path / "nope", target_dir).converge()
