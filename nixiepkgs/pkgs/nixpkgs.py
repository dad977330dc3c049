"""Base catalog, the ``import nixpkgs { inherit system; }`` step.

Each system gets its own bootstrap tools, stdenv and packages. Every
package hashes the nixpkgs source path into its env, so a different
nixpkgs revision yields different derivations, and the system is part of
every derivation, so no two systems ever share a package.

Only the attributes this flake touches are defined.
"""

from nixiepkgs.catalog import Catalog
from nixiepkgs.drv import Package, drv
from nixiepkgs.inputs import ResolvedSource

# attr -> (pname, version, outputs)
BASE_PACKAGES = {
    "pkg-config": ("pkg-config-wrapper", "0.29.2", ["out", "man", "doc"]),
    "openssl": ("openssl", "3.3.2", ["bin", "dev", "out", "man", "doc"]),
    "zlib": ("zlib", "1.3.1", ["dev", "out", "static"]),
    "autoconf": ("autoconf", "2.72", ["out"]),
    "automake": ("automake", "1.16.5", ["out"]),
    "libtool": ("libtool", "2.4.7", ["out", "lib"]),
    "clippy": ("clippy", "1.82.0", ["out"]),
    "cargo": ("cargo", "1.82.0", ["out"]),
    "rustc": ("rustc-wrapper", "1.82.0", ["out", "man", "doc"]),
}


def _os(system: str) -> str:
    return system.rsplit("-", 1)[-1]


def make_bootstrap_tools(system: str, nixpkgs: ResolvedSource) -> Package:
    return drv(
        name="bootstrap-tools",
        builder="/bin/sh",
        system=system,
        args=["-e", f"{nixpkgs.store_path}/pkgs/stdenv/{_os(system)}/bootstrap-tools/unpack.sh"],
        env={"tarball": f"{nixpkgs.store_path}/pkgs/stdenv/{_os(system)}/bootstrap-files/{system}"},
    )


def make_stdenv(system: str, nixpkgs: ResolvedSource, bootstrap_tools: Package) -> Package:
    bt = str(bootstrap_tools)
    return drv(
        name=f"stdenv-{_os(system)}",
        builder=f"{bt}/bin/bash",
        system=system,
        args=["-e", f"{nixpkgs.store_path}/pkgs/stdenv/generic/builder.sh"],
        deps=[bootstrap_tools],
        env={
            "initialPath": bt,
            "setup": f"{nixpkgs.store_path}/pkgs/stdenv/generic/setup.sh",
            "shell": f"{bt}/bin/bash",
        },
    )


def make_package(
    system: str,
    nixpkgs: ResolvedSource,
    stdenv: Package,
    pname: str,
    version: str,
    outputs: list[str],
) -> Package:
    """A plain stdenv.mkDerivation package."""
    return drv(
        name=f"{pname}-{version}",
        builder=stdenv.drv.env["shell"],
        system=system,
        args=["-e", stdenv.drv.env["setup"]],
        output_names=outputs,
        deps=[stdenv],
        env={
            "pname": pname,
            "version": version,
            "src": f"{nixpkgs.store_path}/pkgs/by-name/{pname}",
            "stdenv": str(stdenv),
            "strictDeps": "1",
        },
    )


def make_base_catalog(system: str, nixpkgs: ResolvedSource) -> Catalog:
    bootstrap_tools = make_bootstrap_tools(system, nixpkgs)
    stdenv = make_stdenv(system, nixpkgs, bootstrap_tools)
    packages = {"bootstrap-tools": bootstrap_tools, "stdenv": stdenv}
    for attr, (pname, version, outputs) in BASE_PACKAGES.items():
        packages[attr] = make_package(system, nixpkgs, stdenv, pname, version, outputs)
    return Catalog(system, packages)
