"""Tests for certsync.hashdir.indexer: hashed link name assignment."""

import pytest

from certsync.hashdir.indexer import (
    SuffixArena,
    index_certificates,
    own_suffix,
    parse_hashed_name,
)
from certsync.hashdir.models import CertificateEntry

H1 = "4a44b594"
H2 = "db039224"


def _entry(path: str, subject_hash: str, suffix: int | None = None) -> CertificateEntry:
    return CertificateEntry(path=path, content=b"", subject_hash=subject_hash, suffix=suffix)


# ── name parsing ─────────────────────────────────────────────────────


class TestParseHashedName:
    def test_valid(self):
        assert parse_hashed_name("4a44b594.0") == ("4a44b594", 0)

    def test_multi_digit_suffix(self):
        assert parse_hashed_name("4a44b594.12") == ("4a44b594", 12)

    @pytest.mark.parametrize("name", ["cert1.pem", "4A44B594.0", "4a44b59.0", "4a44b594.x", "4a44b594"])
    def test_invalid(self, name):
        assert parse_hashed_name(name) is None

    def test_own_suffix_matching_hash(self):
        assert own_suffix("4a44b594.3", H1) == 3

    def test_own_suffix_other_hash(self):
        assert own_suffix("db039224.0", H1) is None

    def test_own_suffix_nested_file(self):
        assert own_suffix("sub/4a44b594.0", H1) is None


# ── SuffixArena ──────────────────────────────────────────────────────


class TestSuffixArena:
    def test_allocates_sequentially(self):
        arena = SuffixArena()
        assert [arena.allocate(H1) for _ in range(3)] == [0, 1, 2]

    def test_hashes_independent(self):
        arena = SuffixArena()
        assert arena.allocate(H1) == 0
        assert arena.allocate(H2) == 0

    def test_skips_reserved(self):
        arena = SuffixArena()
        assert arena.reserve(H1, 0)
        assert arena.reserve(H1, 2)
        assert [arena.allocate(H1) for _ in range(2)] == [1, 3]

    def test_reserve_twice_fails(self):
        arena = SuffixArena()
        assert arena.reserve(H1, 0) is True
        assert arena.reserve(H1, 0) is False

    def test_skips_taken_names(self):
        arena = SuffixArena(taken_names=[f"{H1}.0"])
        assert arena.allocate(H1) == 1


# ── index_certificates ───────────────────────────────────────────────


class TestIndexCertificates:
    def test_single(self):
        assert index_certificates([_entry("cert1.pem", H1)]) == {"cert1.pem": f"{H1}.0"}

    def test_collision_gets_next_suffix(self):
        links = index_certificates([_entry("b.pem", H2), _entry("a.pem", H2)])
        assert links == {"a.pem": f"{H2}.0", "b.pem": f"{H2}.1"}

    def test_result_in_path_order(self):
        links = index_certificates([_entry("z.pem", H1), _entry("a/b.pem", H2), _entry("m.pem", H1)])
        assert list(links) == ["a/b.pem", "m.pem", "z.pem"]

    def test_existing_hashed_name_kept(self):
        links = index_certificates([_entry("a.pem", H1), _entry(f"{H1}.0", H1, suffix=0)])
        assert links == {f"{H1}.0": f"{H1}.0", "a.pem": f"{H1}.1"}

    def test_reserved_suffix_leaves_gap_for_others(self):
        links = index_certificates([_entry("a.pem", H1), _entry(f"{H1}.1", H1, suffix=1)])
        assert links == {f"{H1}.1": f"{H1}.1", "a.pem": f"{H1}.0"}

    def test_link_never_clobbers_root_file(self):
        # A file named after another hash's slot must not be overwritten by a link.
        links = index_certificates([_entry(f"{H2}.0", H1), _entry("x.pem", H2)])
        assert links[f"{H2}.0"] == f"{H1}.0"
        assert links["x.pem"] == f"{H2}.1"

    def test_no_duplicate_links(self):
        entries = [_entry(f"c{i}.pem", H1) for i in range(5)] + [_entry(f"{H1}.2", H1, suffix=2)]
        links = index_certificates(entries)
        assert len(set(links.values())) == len(links)

    def test_deterministic(self):
        entries = [_entry("b.pem", H1), _entry("a.pem", H1), _entry("c/d.pem", H1)]
        assert index_certificates(entries) == index_certificates(list(reversed(entries)))

    def test_empty(self):
        assert index_certificates([]) == {}


class TestCertificateEntry:
    def test_rejects_bad_hash(self):
        with pytest.raises(ValueError, match="8-char"):
            _entry("a.pem", "XYZ")

    def test_rejects_negative_suffix(self):
        with pytest.raises(ValueError, match="non-negative"):
            _entry("a.pem", H1, suffix=-1)
