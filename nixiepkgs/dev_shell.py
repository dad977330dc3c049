"""Development shells, the mkShell side of the flake.

A DevShell exposes the same toolchain the package build uses, plus
interactive extras (linters, autotools, RUST_SRC_PATH for editors). It is
only ever entered, never built, so no Package is produced.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from nixiepkgs.catalog import Catalog, CatalogPath, resolve_env
from nixiepkgs.drv import Package


@dataclass(frozen=True)
class Library:
    """A shell entry looked up as a link-time library rather than a tool."""

    name: str


@dataclass(frozen=True)
class ShellSpec:
    name: str = "default"
    packages: tuple[str | Library, ...] = ()  # declaration order is PATH order
    env: Mapping[str, str | CatalogPath] = field(default_factory=dict)


@dataclass(frozen=True)
class DevShell:
    name: str
    system: str
    packages: tuple[Package, ...]
    env: Mapping[str, str]

    def path_entries(self) -> list[str]:
        return [f"{pkg.output('bin')}/bin" for pkg in self.packages]

    def environ(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Environment for an interactive session in this shell."""
        result = dict(os.environ if base is None else base)
        path = os.pathsep.join(self.path_entries())
        if result.get("PATH"):
            path = path + os.pathsep + result["PATH"]
        result["PATH"] = path
        result["IN_NIX_SHELL"] = "impure"
        result["name"] = f"{self.name}-shell"
        result.update(self.env)
        return result

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "system": self.system,
            "packages": [pkg.name for pkg in self.packages],
            "env": dict(sorted(self.env.items())),
        }


def _lookup(catalog: Catalog, entry: str | Library) -> Package:
    if isinstance(entry, Library):
        return catalog.library(entry.name)
    return catalog.tool(entry)


def build(catalog: Catalog, spec: ShellSpec) -> DevShell:
    return DevShell(
        name=spec.name,
        system=catalog.system,
        packages=tuple(_lookup(catalog, entry) for entry in spec.packages),
        env=resolve_env(catalog, spec.env),
    )
