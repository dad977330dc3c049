"""Hash helpers shared by store path and lock file code.

Nix prints digests in three forms: hex, its own base32 ("nix32") and
SRI (``sha256-<base64>``). All three are produced here.

See: nix/src/libutil/hash.cc
"""

import base64
import hashlib

NIX32_CHARS = "0123456789abcdfghijklmnpqrsvwxyz"  # no e, o, t, u


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def compress_hash(digest: bytes, size: int) -> bytes:
    """XOR-fold ``digest`` down to ``size`` bytes (Nix's compressHash).

    Byte i of the input lands on byte i mod size of the output, so every
    input byte contributes, unlike truncation.
    """
    folded = bytearray(size)
    for pos, byte in enumerate(digest):
        folded[pos % size] ^= byte
    return bytes(folded)


def to_nix32(data: bytes) -> str:
    """Encode bytes in Nix base32.

    The 5-bit groups are read starting from the least significant end
    of the little-endian bit string and emitted most significant first,
    which is why the result does not match RFC 4648 even after
    remapping the alphabet.
    """
    value = int.from_bytes(data, "little")
    length = (len(data) * 8 + 4) // 5
    chars = [NIX32_CHARS[(value >> (5 * i)) & 0x1F] for i in range(length)]
    return "".join(reversed(chars))


def to_sri(digest: bytes) -> str:
    """SRI form used by flake.lock and fetchers: ``sha256-<base64>``."""
    return "sha256-" + base64.b64encode(digest).decode()


def from_sri(sri: str) -> bytes:
    algo, sep, payload = sri.partition("-")
    if algo != "sha256" or not sep:
        raise ValueError(f"unsupported SRI hash: {sri!r}")
    digest = base64.b64decode(payload)
    if len(digest) != 32:
        raise ValueError(f"bad sha256 digest length in {sri!r}")
    return digest
