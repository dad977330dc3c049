"""The nix-deploy flake.

Everything static about the flake lives here: its inputs, its overlays,
the package and the dev shell. ``load`` does the one-time I/O (hash the
source tree, read Cargo.lock and flake.lock) and ``outputs`` projects the
description onto every requested system.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from nixie.nar import nar_hash
from nixie.store_path import make_source_store_path
from nixiepkgs.catalog import Catalog, CatalogPath
from nixiepkgs.dev_shell import Library, ShellSpec
from nixiepkgs.drv import Package
from nixiepkgs.inputs import Input, Pin, ResolvedSource, load_pins, resolve
from nixiepkgs.lockfile import LockReference, load_lock
from nixiepkgs.pkgs.rust_overlay import rust_overlay, with_extensions
from nixiepkgs.rust_package import PackageSpec
from nixiepkgs.systems import DEFAULT_SYSTEMS, OutputTree, evaluate

logger = logging.getLogger(__name__)

INPUTS = [
    Input("nixpkgs", "github:NixOS/nixpkgs/nixos-unstable"),
    Input("rust-overlay", "github:oxalica/rust-overlay", follows={"nixpkgs": "nixpkgs"}),
    Input("flake-utils", "github:numtide/flake-utils"),
]

TOOLCHAIN = "rust-bin.stable.latest.default"

META = {
    "description": "TUI tool to update servers running NixOS",
    "license": "mit",
    "maintainers": ["painerp"],
}


def toolchain_overlay(prev: Catalog, inputs: Mapping[str, ResolvedSource]) -> dict[str, Package]:
    """rust-toolchain = rust-bin.stable.latest.default.override { extensions = [ "rust-src" ]; }"""
    return {"rust-toolchain": with_extensions(prev.tool(TOOLCHAIN), ["rust-src"])}


OVERLAYS = [rust_overlay, toolchain_overlay]

DEV_SHELL = ShellSpec(
    name="default",
    packages=(
        "rust-toolchain", "pkg-config", "autoconf", Library("openssl"),
        "libtool", "automake", "clippy",
    ),
    env={"RUST_SRC_PATH": CatalogPath(TOOLCHAIN, "out", "lib/rustlib/src/rust")},
)


def package_spec(src: str, cargo_lock: LockReference) -> PackageSpec:
    return PackageSpec(
        pname="nix-deploy",
        version="0.1.0",
        src=src,
        cargo_lock=cargo_lock,
        native_build_inputs=("pkg-config", "rust-toolchain"),
        build_inputs=("openssl", "zlib"),
        env={"PKG_CONFIG_PATH": CatalogPath("openssl", "dev", "lib/pkgconfig")},
        meta=META,
    )


@dataclass(frozen=True)
class FlakeSource:
    """The result of reading a flake directory once."""

    path: Path
    src: str
    cargo_lock: LockReference
    pins: Mapping[str, Pin]

    @property
    def manifest(self) -> Path:
        return self.path / "Cargo.toml"


def load(flake_dir: str | Path) -> FlakeSource:
    path = Path(flake_dir).resolve()
    src = make_source_store_path("source", nar_hash(path))
    cargo_lock = load_lock(path / "Cargo.lock")
    pins = load_pins((path / "flake.lock").read_text())
    logger.info("loaded flake %s (src %s)", path, src)
    return FlakeSource(path=path, src=src, cargo_lock=cargo_lock, pins=pins)


def outputs(
    source: FlakeSource,
    systems: Iterable[str] | None = None,
    supported: Sequence[str] = DEFAULT_SYSTEMS,
    jobs: int | None = None,
) -> OutputTree:
    resolved = resolve(INPUTS, source.pins)
    return evaluate(
        supported if systems is None else systems,
        resolved,
        OVERLAYS,
        package_spec(source.src, source.cargo_lock),
        DEV_SHELL,
        supported=supported,
        jobs=jobs,
    )
