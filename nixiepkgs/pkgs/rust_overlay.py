"""Rust toolchains from a rust-overlay style input.

Adds ``rust-bin.<channel>.latest.<profile>`` attributes, which upstream
nixpkgs does not have. The overlay reads its manifests from the
``rust-overlay`` input and builds against that input's own ``nixpkgs``
sub-input, which the flake makes follow its top-level nixpkgs.

``with_extensions`` is the ``.override { extensions = [...]; }`` the flake
uses to get a toolchain that ships ``rust-src``.
"""

from collections.abc import Mapping

from nixiepkgs.catalog import Catalog
from nixiepkgs.drv import Package, drv
from nixiepkgs.errors import UnresolvableReference
from nixiepkgs.inputs import ResolvedSource

STABLE_VERSION = "1.82.0"

RUST_TARGETS = {
    "aarch64-darwin": "aarch64-apple-darwin",
    "aarch64-linux": "aarch64-unknown-linux-gnu",
    "armv7l-linux": "armv7-unknown-linux-gnueabihf",
    "i686-linux": "i686-unknown-linux-gnu",
    "riscv64-linux": "riscv64gc-unknown-linux-gnu",
    "x86_64-darwin": "x86_64-apple-darwin",
    "x86_64-linux": "x86_64-unknown-linux-gnu",
}

PROFILES = {
    "minimal": ["rustc", "cargo", "rust-std"],
    "default": ["rustc", "cargo", "rust-std", "rust-docs", "rustfmt", "clippy"],
}


def make_toolchain(
    system: str,
    source: ResolvedSource,
    stdenv: Package,
    profile: str = "default",
    version: str = STABLE_VERSION,
    extensions: list[str] | None = None,
) -> Package:
    nixpkgs = source.inputs.get("nixpkgs")
    if nixpkgs is None:
        raise UnresolvableReference(
            f"{source.name}/nixpkgs", f"input {source.name!r} has no nixpkgs input",
        )
    return drv(
        name=f"rust-{profile}-{version}",
        builder=stdenv.drv.env["shell"],
        system=system,
        args=["-e", f"{source.store_path}/lib/rust-bin/builder.sh"],
        deps=[stdenv],
        env={
            "components": " ".join(PROFILES[profile]),
            "extensions": " ".join(sorted(extensions or [])),
            "manifest": f"{source.store_path}/manifests/stable/{version}.nix",
            "nixpkgsRev": nixpkgs.rev,
            "target": RUST_TARGETS[system],
            "version": version,
        },
    )


def with_extensions(toolchain: Package, extensions: list[str]) -> Package:
    env = dict(toolchain._args["env"])
    current = set(env.get("extensions", "").split())
    env["extensions"] = " ".join(sorted(current | set(extensions)))
    return toolchain.override(env=env)


def rust_overlay(prev: Catalog, inputs: Mapping[str, ResolvedSource]) -> dict[str, Package]:
    if prev.system not in RUST_TARGETS:
        return {}
    source = inputs.get("rust-overlay")
    if source is None:
        raise UnresolvableReference("rust-overlay", "rust_overlay needs a 'rust-overlay' input")
    stdenv = prev["stdenv"]
    return {
        f"rust-bin.stable.latest.{profile}": make_toolchain(prev.system, source, stdenv, profile)
        for profile in PROFILES
    }
