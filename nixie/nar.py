"""NAR hashing of a source tree.

A flake's ``src = ./.`` is copied into the store by NAR-serializing the
directory and hashing the bytes. NAR drops timestamps, ownership and all
mode bits except "executable", and sorts directory entries, so equal
trees always hash equally.

Every token is written as uint64_le(len) + bytes + zero padding to a
multiple of 8.

See: nix/src/libutil/archive.cc
"""

import hashlib
import os
import struct
from pathlib import Path
from typing import Iterator


def _token(value: str | bytes) -> bytes:
    if isinstance(value, str):
        value = value.encode()
    padding = -len(value) % 8
    return struct.pack("<Q", len(value)) + value + b"\0" * padding


def _node(path: Path) -> Iterator[bytes]:
    yield _token("(")
    yield _token("type")
    if path.is_symlink():
        yield _token("symlink")
        yield _token("target")
        yield _token(os.readlink(path))
    elif path.is_file():
        yield _token("regular")
        if os.access(path, os.X_OK):
            yield _token("executable")
            yield _token("")
        yield _token("contents")
        yield _token(path.read_bytes())
    elif path.is_dir():
        yield _token("directory")
        for name in sorted(os.listdir(path)):
            yield _token("entry")
            yield _token("(")
            yield _token("name")
            yield _token(name)
            yield _token("node")
            yield from _node(path / name)
            yield _token(")")
    else:
        raise ValueError(f"unsupported file type: {path}")
    yield _token(")")


def dump(path: str | Path) -> Iterator[bytes]:
    """Yield the NAR serialization of ``path`` chunk by chunk."""
    yield _token("nix-archive-1")
    yield from _node(Path(path))


def nar_hash(path: str | Path) -> bytes:
    """SHA-256 of the NAR serialization, what `nix hash path` prints."""
    h = hashlib.sha256()
    for chunk in dump(path):
        h.update(chunk)
    return h.digest()
