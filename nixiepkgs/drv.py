"""High-level derivation constructor.

Turns readable arguments into a Package with computed output paths and a
``.drv`` store path:

    drv(name="hello", builder="/bin/sh", system="aarch64-linux",
        args=["-c", "echo hi > $out"])

The ``system`` argument is part of the hashed derivation, so the same
recipe evaluated for two systems yields two distinct packages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from nixie.derivation import (
    Derivation,
    DerivationOutput,
    hash_derivation_modulo,
    serialize,
)
from nixie.store_path import make_output_path, make_text_store_path


def _input_hashes(deps: list[Package]) -> dict[str, bytes]:
    """Modular hashes of every transitive dependency, outputs filled in."""
    hashes: dict[str, bytes] = {}

    def visit(pkg: Package) -> None:
        if pkg.drv_path in hashes:
            return
        for sub in pkg._args.get("deps") or []:
            visit(sub)
        hashes[pkg.drv_path] = hash_derivation_modulo(pkg.drv, hashes, mask_outputs=False)

    for dep in deps:
        visit(dep)
    return hashes


@dataclass(frozen=True)
class Package:
    """A derivation with computed output paths.

    str(pkg) is the default output path, like string interpolation of a
    package in Nix.
    """

    name: str
    system: str
    drv: Derivation
    drv_path: str
    outputs: dict[str, str]
    meta: dict[str, Any] = field(default_factory=dict)
    _args: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def out(self) -> str:
        return self.outputs["out"]

    def __str__(self) -> str:
        return self.out

    def output(self, name: str) -> str:
        """Path of output ``name``, falling back to ``out`` like ``pkg.dev or pkg``."""
        return self.outputs.get(name, self.out)

    def override(self, **kw) -> Package:
        """Re-derive with changed arguments. Like pkg.override in Nix."""
        return drv(**{**self._args, **kw})

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "system": self.system,
            "drvPath": self.drv_path,
            "outputs": dict(sorted(self.outputs.items())),
            "meta": self.meta,
        }


def drv(
    name: str,
    builder: str,
    system: str = "x86_64-linux",
    args: list[str] | None = None,
    env: dict[str, str] | None = None,
    output_names: list[str] | None = None,
    deps: list[Package] | None = None,
    srcs: list[str] | None = None,
    meta: dict[str, Any] | None = None,
) -> Package:
    """Create a Package with computed output paths and .drv store path.

    Args:
        name:         Package name (becomes the store path suffix).
        builder:      Path to the builder executable.
        system:       Build platform.
        args:         Arguments to the builder.
        env:          Extra environment variables.
        output_names: Output names (default: ["out"]).
        deps:         Package dependencies (input derivations).
        srcs:         Input source store paths.
        meta:         Descriptive attributes; not part of the hash.
    """
    output_names = list(output_names or ["out"])
    deps = list(deps or [])
    recipe = dict(
        name=name, builder=builder, system=system, args=list(args or []),
        env=dict(env or {}), output_names=output_names, deps=deps,
        srcs=list(srcs or []), meta=dict(meta or {}),
    )

    base_env = {"name": name, "builder": builder, "system": system}
    if len(output_names) > 1:
        base_env["outputs"] = " ".join(output_names)
    base_env.update(recipe["env"])

    def derivation(paths: dict[str, str]) -> Derivation:
        return Derivation(
            outputs={n: DerivationOutput(paths[n]) for n in output_names},
            input_drvs={dep.drv_path: sorted(dep.outputs) for dep in deps},
            input_srcs=sorted(set(recipe["srcs"])),
            platform=system,
            builder=builder,
            args=recipe["args"],
            env={**base_env, **paths},
        )

    blank = derivation(dict.fromkeys(output_names, ""))
    drv_hash = hash_derivation_modulo(blank, _input_hashes(deps))
    outputs = {n: make_output_path(drv_hash, n, name) for n in output_names}
    filled = derivation(outputs)

    refs = sorted(filled.input_drvs) + filled.input_srcs
    drv_path = make_text_store_path(name + ".drv", serialize(filled).encode(), refs)
    return Package(
        name=name,
        system=system,
        drv=filled,
        drv_path=drv_path,
        outputs=outputs,
        meta=recipe["meta"],
        _args=recipe,
    )
