"""Derivations and their ATerm serialization.

A derivation is the build recipe Nix writes to ``<name>.drv``:

    Derive([outputs],[inputDrvs],[inputSrcs],"system","builder",[args],[env])

The ATerm text is what gets hashed, so serialization must be canonical:
outputs, input derivations, sources and env are all sorted.

See: nix/src/libstore/derivations.cc
"""

from dataclasses import dataclass, field

from nixie.hash import sha256


@dataclass
class DerivationOutput:
    path: str
    hash_algo: str = ""
    hash_value: str = ""


@dataclass
class Derivation:
    outputs: dict[str, DerivationOutput] = field(default_factory=dict)
    input_drvs: dict[str, list[str]] = field(default_factory=dict)  # drv path -> output names
    input_srcs: list[str] = field(default_factory=list)
    platform: str = ""
    builder: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Shape used by ``nix derivation show``."""
        return {
            "outputs": {name: {"path": o.path} for name, o in sorted(self.outputs.items())},
            "inputDrvs": {p: sorted(outs) for p, outs in sorted(self.input_drvs.items())},
            "inputSrcs": sorted(self.input_srcs),
            "system": self.platform,
            "builder": self.builder,
            "args": list(self.args),
            "env": dict(sorted(self.env.items())),
        }


_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})


def _q(s: str) -> str:
    return '"' + s.translate(_ESCAPES) + '"'


def _list(items) -> str:
    return "[" + ",".join(items) + "]"


def serialize(drv: Derivation) -> str:
    """Serialize a Derivation to canonical ATerm."""
    outputs = _list(
        f"({_q(name)},{_q(o.path)},{_q(o.hash_algo)},{_q(o.hash_value)})"
        for name, o in sorted(drv.outputs.items())
    )
    input_drvs = _list(
        f"({_q(path)},{_list(_q(o) for o in sorted(outs))})"
        for path, outs in sorted(drv.input_drvs.items())
    )
    input_srcs = _list(_q(s) for s in sorted(drv.input_srcs))
    args = _list(_q(a) for a in drv.args)
    env = _list(f"({_q(k)},{_q(v)})" for k, v in sorted(drv.env.items()))
    return (
        f"Derive({outputs},{input_drvs},{input_srcs},"
        f"{_q(drv.platform)},{_q(drv.builder)},{args},{env})"
    )


def hash_derivation_modulo(
    drv: Derivation,
    drv_hashes: dict[str, bytes],
    mask_outputs: bool = True,
) -> bytes:
    """Hash a derivation with input .drv paths replaced by their own hashes.

    Output paths are derived from this hash, yet the derivation lists its
    own output paths. With ``mask_outputs`` they are blanked (in outputs
    and in env) to break that cycle. Inputs are hashed with their filled
    paths, so dependency hashes are taken with ``mask_outputs=False``.
    """
    outputs = {
        name: DerivationOutput("" if mask_outputs else o.path, o.hash_algo, o.hash_value)
        for name, o in drv.outputs.items()
    }
    env = dict(drv.env)
    if mask_outputs:
        for name in drv.outputs:
            if name in env:
                env[name] = ""

    input_drvs: dict[str, list[str]] = {}
    for path, outs in drv.input_drvs.items():
        if path not in drv_hashes:
            raise ValueError(f"missing hash for input derivation: {path}")
        input_drvs[drv_hashes[path].hex()] = sorted(outs)

    masked = Derivation(
        outputs=outputs,
        input_drvs=input_drvs,
        input_srcs=list(drv.input_srcs),
        platform=drv.platform,
        builder=drv.builder,
        args=list(drv.args),
        env=env,
    )
    return sha256(serialize(masked).encode())
