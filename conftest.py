"""Shared fixtures: a small nix-deploy flake on disk and its parsed pieces."""

import json

import pytest

from nixie.hash import sha256, to_sri
from nixiepkgs.inputs import load_pins, resolve
from nixiepkgs.lockfile import parse_lock

CARGO_TOML = """\
[package]
name = "nix-deploy"
version = "0.1.0"
edition = "2021"

[dependencies]
anyhow = "1"
ssh2 = { version = "0.9", features = ["vendored-openssl"] }
"""

CARGO_LOCK = """\
# This file is automatically @generated by Cargo.
version = 3

[[package]]
name = "anyhow"
version = "1.0.86"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "b3d1d046238990b9cf5bcde22a3fb3584ee5cf65fb2765f454ed428c7a0063da"

[[package]]
name = "nix-deploy"
version = "0.1.0"
dependencies = [
 "anyhow",
 "ssh2",
]

[[package]]
name = "ssh2"
version = "0.9.4"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "e7fe461910559f6d5604c3731d00d2aafc4a83d1665922e280f42f9a168d5455"
"""

REVS = {
    "nixpkgs": "5e4fbfb6b3de1aa2872b76d49fafc942626e2add",
    "rust-overlay": "4c6e317300f05b8871f585b826b6f583e7dc4a9b",
    "flake-utils": "11707dc2f618dd54ca8739b309ec4fc024de578b",
    "systems": "da67096a3b9bf56a91d16901293e51ba5b49a27e",
}


def _locked(name: str, owner: str) -> dict:
    return {
        "locked": {
            "lastModified": 1731000000,
            "narHash": to_sri(sha256(name.encode())),
            "owner": owner,
            "repo": name,
            "rev": REVS[name],
            "type": "github",
        },
        "original": {"owner": owner, "repo": name, "type": "github"},
    }


def make_flake_lock() -> dict:
    return {
        "nodes": {
            "flake-utils": {"inputs": {"systems": "systems"}, **_locked("flake-utils", "numtide")},
            "nixpkgs": _locked("nixpkgs", "NixOS"),
            "root": {
                "inputs": {
                    "flake-utils": "flake-utils",
                    "nixpkgs": "nixpkgs",
                    "rust-overlay": "rust-overlay",
                },
            },
            "rust-overlay": {"inputs": {"nixpkgs": ["nixpkgs"]}, **_locked("rust-overlay", "oxalica")},
            "systems": _locked("systems", "nix-systems"),
        },
        "root": "root",
        "version": 7,
    }


@pytest.fixture
def flake_dir(tmp_path):
    root = tmp_path / "nix-deploy"
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.rs").write_text('fn main() { println!("nix-deploy"); }\n')
    (root / "Cargo.toml").write_text(CARGO_TOML)
    (root / "Cargo.lock").write_text(CARGO_LOCK)
    (root / "flake.lock").write_text(json.dumps(make_flake_lock(), indent=2))
    return root


@pytest.fixture
def flake_lock():
    return make_flake_lock()


@pytest.fixture
def pins():
    return load_pins(make_flake_lock())


@pytest.fixture
def resolved(pins):
    from nixiepkgs.flake import INPUTS
    return resolve(INPUTS, pins)


@pytest.fixture
def cargo_lock():
    return parse_lock("Cargo.lock", CARGO_LOCK.encode())
