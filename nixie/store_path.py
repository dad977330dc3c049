"""Store path computation.

A store path is ``/nix/store/<hash>-<name>`` where ``<hash>`` is the
nix32 encoding of a 20-byte XOR-fold of

    sha256("<type>:sha256:<hex inner hash>:/nix/store:<name>")

``<type>`` is ``text``, ``source`` or ``output:<name>``, with sorted
references appended as ``:<ref>`` (no trailing colon when there are none).

See: nix/src/libstore/store-api.cc, makeStorePath()
"""

from nixie.hash import compress_hash, sha256, to_nix32

STORE_DIR = "/nix/store"
HASH_BYTES = 20


def make_store_path(type_prefix: str, inner_hash: bytes, name: str) -> str:
    fingerprint = f"{type_prefix}:sha256:{inner_hash.hex()}:{STORE_DIR}:{name}"
    digest = compress_hash(sha256(fingerprint.encode()), HASH_BYTES)
    return f"{STORE_DIR}/{to_nix32(digest)}-{name}"


def _with_refs(kind: str, references: list[str] | None) -> str:
    return ":".join([kind, *sorted(references or [])])


def make_text_store_path(name: str, content: bytes, references: list[str] | None = None) -> str:
    """Path of a text file added with builtins.toFile / writeText."""
    return make_store_path(_with_refs("text", references), sha256(content), name)


def make_source_store_path(name: str, nar_digest: bytes, references: list[str] | None = None) -> str:
    """Path of an imported source tree (``./.``, fetched flake inputs)."""
    return make_store_path(_with_refs("source", references), nar_digest, name)


def make_output_path(drv_hash: bytes, output_name: str, name: str) -> str:
    """Path of one derivation output; non-``out`` outputs get a suffix."""
    suffix = "" if output_name == "out" else f"-{output_name}"
    return make_store_path(f"output:{output_name}", drv_hash, name + suffix)


def store_name(path: str) -> str:
    """``/nix/store/<hash>-zlib-1.3.1`` → ``zlib-1.3.1``."""
    base = path.rsplit("/", 1)[-1]
    return base.split("-", 1)[1]
