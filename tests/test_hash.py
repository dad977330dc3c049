"""Tests for digest encodings."""

import hashlib

import pytest

from nixie.hash import compress_hash, from_sri, sha256, to_nix32, to_sri

HELLO_SHA256 = hashlib.sha256(b"hello").digest()
# echo -n hello | nix hash file --base32 /dev/stdin
HELLO_NIX32 = "094qif9n4cq4fdg459qzbhg1c6wywawwaaivx0k0x8xhbyx4vwic"


def test_nix32_matches_nix():
    assert to_nix32(HELLO_SHA256) == HELLO_NIX32


def test_nix32_length():
    for n in (0, 1, 5, 20, 32):
        assert len(to_nix32(bytes(n))) == (n * 8 + 4) // 5


def test_nix32_zero_store_hash():
    assert to_nix32(bytes(20)) == "0" * 32


def test_compress_hash_folds_tail():
    digest = bytes(range(32))
    folded = compress_hash(digest, 20)
    assert len(folded) == 20
    assert folded[0] == 0 ^ 20
    assert folded[11] == 11 ^ 31
    assert folded[12] == 12


def test_sri_roundtrip_and_format():
    sri = to_sri(sha256(b"x"))
    assert sri.startswith("sha256-")
    assert from_sri(sri) == sha256(b"x")


def test_from_sri_rejects_other_algorithms():
    with pytest.raises(ValueError, match="unsupported SRI hash"):
        from_sri("sha512-AAAA")
