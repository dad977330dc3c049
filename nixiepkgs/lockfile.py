"""Cargo lock references.

``cargoLock.lockFile = ./Cargo.lock`` makes Cargo.lock the only source
of dependency versions. ``load_lock`` reads it once, before evaluation,
into a LockReference that the package builder binds verbatim.

``check_lock`` is the realization-time check: every dependency declared
in Cargo.toml must be pinned in the lock, and the lock on disk must
still have the digest that was evaluated. It never edits the lock.
"""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

from nixie.hash import sha256, to_sri
from nixiepkgs.errors import LockMismatch

logger = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "build-dependencies", "dev-dependencies")


@dataclass(frozen=True)
class LockedPackage:
    name: str
    version: str
    source: str = ""
    checksum: str = ""


@dataclass(frozen=True)
class LockReference:
    path: str
    digest: str  # SRI sha256 of the file bytes
    content: bytes
    packages: tuple[LockedPackage, ...] = ()

    def versions(self, name: str) -> list[str]:
        return [p.version for p in self.packages if p.name == name]


def parse_lock(path: str, content: bytes) -> LockReference:
    try:
        data = tomllib.loads(content.decode())
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ValueError(f"{path}: not a valid Cargo.lock: {e}") from e
    try:
        packages = tuple(
            LockedPackage(
                name=p["name"],
                version=p["version"],
                source=p.get("source", ""),
                checksum=p.get("checksum", ""),
            )
            for p in data.get("package", [])
        )
    except KeyError as e:
        raise ValueError(f"{path}: not a valid Cargo.lock: package entry without {e.args[0]}") from e
    return LockReference(path=path, digest=to_sri(sha256(content)), content=content, packages=packages)


def load_lock(path: str | Path) -> LockReference:
    p = Path(path)
    ref = parse_lock(str(p), p.read_bytes())
    logger.debug("%s: %d locked packages, %s", p, len(ref.packages), ref.digest)
    return ref


def declared_dependencies(manifest: dict) -> dict[str, str]:
    """Dependency name -> version requirement from a parsed Cargo.toml.

    Renamed dependencies (``foo = { package = "bar" }``) are looked up by
    their real package name. Target-specific tables are included.
    """
    tables = [manifest]
    tables.extend(manifest.get("target", {}).values())
    deps: dict[str, str] = {}
    for table in tables:
        for kind in DEPENDENCY_TABLES:
            for key, spec in table.get(kind, {}).items():
                if isinstance(spec, str):
                    deps[key] = spec
                else:
                    deps[spec.get("package", key)] = spec.get("version", "*")
    return deps


def check_lock(lock: LockReference, manifest_path: str | Path) -> None:
    """Raise LockMismatch if the lock no longer matches the source tree."""
    lock_path = Path(lock.path)
    if lock_path.exists():
        current = to_sri(sha256(lock_path.read_bytes()))
        if current != lock.digest:
            raise LockMismatch(
                lock.path, f"{lock.path} changed since evaluation ({lock.digest} != {current})",
            )

    manifest = tomllib.loads(Path(manifest_path).read_text())
    locked = {p.name for p in lock.packages}

    package = manifest.get("package", {})
    name = package.get("name")
    if name is not None and name not in locked:
        raise LockMismatch(name, f"package {name!r} is not in {lock.path}")
    version = package.get("version")
    if name is not None and isinstance(version, str) and version not in lock.versions(name):
        raise LockMismatch(
            name, f"{name} {version} in Cargo.toml but {lock.path} has {lock.versions(name)}",
        )

    for dep in sorted(declared_dependencies(manifest)):
        if dep not in locked:
            raise LockMismatch(dep, f"dependency {dep!r} is declared in Cargo.toml but not locked")
