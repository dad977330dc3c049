"""Evaluate one flake description for every supported system.

The Python side of ``flake-utils.lib.eachDefaultSystem``. Each system is
evaluated on its own: it gets a fresh base catalog, its own overlay
composition and its own package and shell. Nothing is shared between
systems except the frozen ResolvedSource values, so systems run in
parallel without locks, and adding or dropping a system never changes
another system's outputs.

Evaluation is all or nothing. Requested systems are validated before any
work starts, and the first failure on any system aborts the whole run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

from nixiepkgs import dev_shell, rust_package
from nixiepkgs.catalog import Catalog
from nixiepkgs.dev_shell import DevShell, ShellSpec
from nixiepkgs.drv import Package
from nixiepkgs.errors import UnresolvableReference, UnsupportedSystem
from nixiepkgs.inputs import ResolvedSource
from nixiepkgs.overlay import Overlay, compose
from nixiepkgs.pkgs.nixpkgs import make_base_catalog
from nixiepkgs.rust_package import PackageSpec

logger = logging.getLogger(__name__)

# flake-utils defaultSystems
DEFAULT_SYSTEMS = (
    "aarch64-darwin",
    "aarch64-linux",
    "x86_64-darwin",
    "x86_64-linux",
)

ALL_SYSTEMS = DEFAULT_SYSTEMS + (
    "armv7l-linux",
    "i686-linux",
    "riscv64-linux",
)


@dataclass(frozen=True)
class OutputTree:
    packages: Mapping[str, Mapping[str, Package]] = field(default_factory=dict)
    dev_shells: Mapping[str, Mapping[str, DevShell]] = field(default_factory=dict)

    @property
    def systems(self) -> list[str]:
        return sorted(self.packages)

    def to_dict(self) -> dict:
        return {
            "packages": {
                system: {name: pkg.to_dict() for name, pkg in sorted(pkgs.items())}
                for system, pkgs in sorted(self.packages.items())
            },
            "devShells": {
                system: {name: shell.to_dict() for name, shell in sorted(shells.items())}
                for system, shells in sorted(self.dev_shells.items())
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


def check_systems(systems: Iterable[str], supported: Sequence[str]) -> list[str]:
    requested = sorted(set(systems))
    for system in requested:
        if system not in supported:
            raise UnsupportedSystem(system, supported)
    return requested


def each_system(
    systems: Iterable[str],
    fn: Callable[[str], Mapping[str, Any]],
    supported: Sequence[str] = DEFAULT_SYSTEMS,
    jobs: int | None = None,
) -> dict[str, dict[str, Any]]:
    """Call ``fn(system)`` for every system and regroup by output kind.

    ``fn`` returns ``{"packages": ..., "devShells": ...}``; the result is
    ``{"packages": {system: ...}, "devShells": {system: ...}}``, sorted
    by system regardless of completion order.
    """
    requested = check_systems(systems, supported)
    results: dict[str, Mapping[str, Any]] = {}

    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="eval") as executor:
        futures = {executor.submit(fn, system): system for system in requested}
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in sorted(done, key=lambda f: futures[f]):
            results[futures[future]] = future.result()

    grouped: dict[str, dict[str, Any]] = {}
    for system in requested:
        for kind, value in results[system].items():
            grouped.setdefault(kind, {})[system] = value
    return grouped


def evaluate(
    systems: Iterable[str],
    resolved: Mapping[str, ResolvedSource],
    overlays: Sequence[Overlay],
    package_spec: PackageSpec,
    shell_spec: ShellSpec,
    *,
    supported: Sequence[str] = DEFAULT_SYSTEMS,
    base_catalog: Callable[[str, ResolvedSource], Catalog] = make_base_catalog,
    catalog_input: str = "nixpkgs",
    jobs: int | None = None,
) -> OutputTree:
    """Build the packages and devShells trees for ``systems``."""
    requested = check_systems(systems, supported)
    if catalog_input not in resolved:
        raise UnresolvableReference(catalog_input, f"no {catalog_input!r} input to build catalogs from")
    nixpkgs = resolved[catalog_input]
    logger.info("evaluating %s for %s", package_spec.name, ", ".join(requested))

    def evaluate_system(system: str) -> dict[str, Any]:
        catalog = compose(base_catalog(system, nixpkgs), resolved, overlays)
        package = rust_package.build(catalog, package_spec)
        shell = dev_shell.build(catalog, shell_spec)
        logger.debug("%s: %s -> %s", system, package.name, package.drv_path)
        return {
            "packages": {package_spec.name: package, "default": package},
            "devShells": {shell_spec.name: shell},
        }

    grouped = each_system(requested, evaluate_system, supported=supported, jobs=jobs)
    return OutputTree(
        packages=grouped.get("packages", {}),
        dev_shells=grouped.get("devShells", {}),
    )
