"""Tests for Cargo lock references and the realization-time check."""

import pytest

from nixiepkgs.errors import LockMismatch
from nixiepkgs.lockfile import check_lock, declared_dependencies, load_lock, parse_lock


def test_parse_lock(cargo_lock):
    assert [p.name for p in cargo_lock.packages] == ["anyhow", "nix-deploy", "ssh2"]
    assert cargo_lock.versions("anyhow") == ["1.0.86"]
    assert cargo_lock.packages[0].checksum.startswith("b3d1d046")
    assert cargo_lock.digest.startswith("sha256-")


def test_parse_lock_rejects_garbage():
    with pytest.raises(ValueError, match="not a valid Cargo.lock"):
        parse_lock("Cargo.lock", b"[[package]\nname =")


def test_parse_lock_rejects_package_without_version():
    content = b"version = 3\n\n[[package]]\nname = \"anyhow\"\n"
    with pytest.raises(ValueError, match="not a valid Cargo.lock: package entry without version"):
        parse_lock("Cargo.lock", content)


def test_digest_tracks_content(cargo_lock):
    other = parse_lock("Cargo.lock", cargo_lock.content + b"\n")
    assert other.digest != cargo_lock.digest


def test_declared_dependencies():
    manifest = {
        "dependencies": {"anyhow": "1", "tokio": {"version": "1", "features": ["full"]}},
        "dev-dependencies": {"tempfile": "3"},
        "target": {"cfg(unix)": {"dependencies": {"nix": {"version": "0.29", "package": "nix"}}}},
        "build-dependencies": {"openssl-src": {"package": "openssl-src", "version": "300"}},
    }
    assert declared_dependencies(manifest) == {
        "anyhow": "1",
        "tokio": "1",
        "tempfile": "3",
        "nix": "0.29",
        "openssl-src": "300",
    }


def test_renamed_dependency_uses_package_name():
    deps = declared_dependencies({"dependencies": {"ssh": {"package": "ssh2", "version": "0.9"}}})
    assert deps == {"ssh2": "0.9"}


def test_check_lock_ok(flake_dir):
    check_lock(load_lock(flake_dir / "Cargo.lock"), flake_dir / "Cargo.toml")


def test_check_lock_undeclared_dependency(flake_dir):
    lock = load_lock(flake_dir / "Cargo.lock")
    manifest = flake_dir / "Cargo.toml"
    manifest.write_text(manifest.read_text() + 'crossterm = "0.28"\n')
    with pytest.raises(LockMismatch) as exc:
        check_lock(lock, manifest)
    assert exc.value.name == "crossterm"


def test_check_lock_version_bump(flake_dir):
    lock = load_lock(flake_dir / "Cargo.lock")
    manifest = flake_dir / "Cargo.toml"
    manifest.write_text(manifest.read_text().replace('version = "0.1.0"', 'version = "0.2.0"'))
    with pytest.raises(LockMismatch, match="0.2.0"):
        check_lock(lock, manifest)


def test_check_lock_changed_after_evaluation(flake_dir):
    lock = load_lock(flake_dir / "Cargo.lock")
    (flake_dir / "Cargo.lock").write_text(lock.content.decode() + "\n")
    with pytest.raises(LockMismatch, match="changed since evaluation"):
        check_lock(lock, flake_dir / "Cargo.toml")
