"""Python equivalent of rustPlatform.buildRustPackage.

    build(catalog, PackageSpec(
        pname="nix-deploy", version="0.1.0", src=src, cargo_lock=lock,
        native_build_inputs=("pkg-config", "rust-toolchain"),
        build_inputs=("openssl", "zlib"),
        env={"PKG_CONFIG_PATH": CatalogPath("openssl", "dev", "lib/pkgconfig")},
    ))

Every lookup happens before the derivation is created, so a missing tool
or library raises without leaving a half-built Package behind. The
Cargo.lock is bound as-is: its bytes become a store path and its digest
goes into the env. Versions are never resolved here.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nixie.store_path import make_text_store_path
from nixiepkgs.catalog import Catalog, CatalogPath, resolve_env
from nixiepkgs.drv import Package, drv
from nixiepkgs.lockfile import LockReference

RUST_PACKAGE_DEFAULTS = {
    "cargoBuildType": "release",
    "cargoCheckType": "release",
    "cargoBuildFeatures": "",
    "cargoBuildNoDefaultFeatures": "",
    "doCheck": "1",
    "strictDeps": "1",
}


@dataclass(frozen=True)
class PackageSpec:
    pname: str
    version: str
    src: str
    cargo_lock: LockReference
    native_build_inputs: tuple[str, ...] = ()
    build_inputs: tuple[str, ...] = ()
    env: Mapping[str, str | CatalogPath] = field(default_factory=dict)
    meta: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.pname


def build(catalog: Catalog, spec: PackageSpec) -> Package:
    """Resolve ``spec`` against one system's catalog into a Package."""
    stdenv = catalog.tool("stdenv")
    tools = [catalog.tool(name) for name in spec.native_build_inputs]
    libraries = [catalog.library(name) for name in spec.build_inputs]
    extra_env = resolve_env(catalog, spec.env)

    cargo_deps = make_text_store_path("Cargo.lock", spec.cargo_lock.content)

    env = dict(RUST_PACKAGE_DEFAULTS)
    env.update(
        pname=spec.pname,
        version=spec.version,
        src=spec.src,
        stdenv=str(stdenv),
        cargoDeps=cargo_deps,
        cargoLockHash=spec.cargo_lock.digest,
        nativeBuildInputs=" ".join(str(t) for t in tools),
        # stdenv picks the dev output of libraries
        buildInputs=" ".join(lib.output("dev") for lib in libraries),
    )
    env.update(extra_env)

    return drv(
        name=f"{spec.pname}-{spec.version}",
        builder=stdenv.drv.env["shell"],
        system=catalog.system,
        args=["-e", stdenv.drv.env["setup"]],
        deps=[stdenv, *tools, *libraries],
        srcs=[spec.src, cargo_deps],
        env=env,
        meta=dict(spec.meta),
    )
