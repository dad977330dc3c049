"""Flake inputs and their resolution against a flake.lock.

    inputs = {
      nixpkgs.url = "github:NixOS/nixpkgs/nixos-unstable";
      rust-overlay = {
        url = "github:oxalica/rust-overlay";
        inputs.nixpkgs.follows = "nixpkgs";
      };
    };

becomes

    [Input("nixpkgs", "github:NixOS/nixpkgs/nixos-unstable"),
     Input("rust-overlay", "github:oxalica/rust-overlay",
           follows={"nixpkgs": "nixpkgs"})]

Resolution never fetches anything: revisions come from the lock. A
followed sub-input is not resolved on its own, it *is* the target's
ResolvedSource, so rust-overlay builds against the exact nixpkgs
revision the flake itself uses.

All follow targets are checked up front. A missing target or a follow
cycle raises UnresolvableReference before any catalog exists.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from nixie.hash import from_sri
from nixie.store_path import make_source_store_path
from nixiepkgs.errors import UnresolvableReference

logger = logging.getLogger(__name__)

LOCK_VERSION = 7


@dataclass(frozen=True)
class Input:
    name: str
    url: str
    follows: Mapping[str, str] = field(default_factory=dict)  # sub-input -> "input" or "input/sub"


@dataclass(frozen=True)
class Pin:
    rev: str
    nar_hash: str  # SRI
    last_modified: int = 0


@dataclass(frozen=True)
class ResolvedSource:
    name: str
    url: str
    rev: str
    nar_hash: str
    last_modified: int = 0
    inputs: Mapping[str, ResolvedSource] = field(default_factory=dict)

    @property
    def store_path(self) -> str:
        """Where the fetched tree lives; Nix names flake sources "source"."""
        return make_source_store_path("source", from_sri(self.nar_hash))

    @property
    def short_rev(self) -> str:
        return self.rev[:7]

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "rev": self.rev,
            "narHash": self.nar_hash,
            "lastModified": self.last_modified,
            "inputs": {k: v.name for k, v in sorted(self.inputs.items())},
        }


def load_pins(lock: str | Mapping) -> dict[str, Pin]:
    """Read locked revisions from flake.lock content.

    Returns pins keyed by input path: "nixpkgs" for a direct input,
    "flake-utils/systems" for a sub-input that has its own lock node.
    Follow references (lists in the lock) are skipped; they are declared
    on the Input and resolved by ``resolve``.
    """
    data = json.loads(lock) if isinstance(lock, str) else lock
    if data.get("version") != LOCK_VERSION:
        raise ValueError(f"unsupported flake.lock version: {data.get('version')!r}")
    nodes = data.get("nodes", {})
    root_ref = data.get("root", "root")

    def node(ref: str) -> Mapping:
        if ref not in nodes:
            raise ValueError(f"flake.lock node {ref!r} does not exist")
        return nodes[ref]

    pins: dict[str, Pin] = {}

    def walk(parent: Mapping, prefix: str, seen: frozenset) -> None:
        for sub, ref in sorted(parent.get("inputs", {}).items()):
            if not isinstance(ref, str) or ref in seen:
                continue
            target = node(ref)
            locked = target.get("locked")
            if locked is None:
                raise ValueError(f"flake.lock node {ref!r} is not locked")
            if "narHash" not in locked:
                raise ValueError(f"flake.lock node {ref!r} has no narHash")
            path = f"{prefix}{sub}"
            pins[path] = Pin(
                rev=locked.get("rev", ""),
                nar_hash=locked["narHash"],
                last_modified=locked.get("lastModified", 0),
            )
            walk(target, path + "/", seen | {ref})

    walk(node(root_ref), "", frozenset({root_ref}))
    return pins


def resolve(inputs: list[Input], pins: Mapping[str, Pin]) -> dict[str, ResolvedSource]:
    """Resolve every input to a pinned source, sharing followed ones.

    Raises UnresolvableReference for a missing follow target, a follow
    cycle, or an input without a pin.
    """
    by_name = {i.name: i for i in inputs}
    resolved: dict[str, ResolvedSource] = {}
    visiting: list[str] = []

    def leaf(path: str, url: str) -> ResolvedSource:
        pin = pins.get(path)
        if pin is None:
            raise UnresolvableReference(path, f"input {path!r} is not locked")
        return ResolvedSource(
            name=path, url=url, rev=pin.rev,
            nar_hash=pin.nar_hash, last_modified=pin.last_modified,
        )

    def resolve_path(path: str, wanted_by: str) -> ResolvedSource:
        if path in resolved:
            return resolved[path]
        if path in visiting:
            chain = " -> ".join(visiting[visiting.index(path):] + [path])
            raise UnresolvableReference(path, f"follows cycle: {chain}")
        top, _, sub = path.partition("/")
        if top not in by_name:
            raise UnresolvableReference(
                top, f"input {wanted_by!r} follows {path!r}, which does not exist",
            )
        visiting.append(path)
        try:
            inp = by_name[top]
            if not sub:
                result = leaf(path, inp.url)
                nested = {
                    name: resolve_path(target, f"{top}/{name}")
                    for name, target in sorted(inp.follows.items())
                }
                for key in sorted(pins):
                    owner, _, name = key.partition("/")
                    if owner == top and name and "/" not in name and name not in nested:
                        nested[name] = resolve_path(key, top)
                result = ResolvedSource(
                    name=result.name, url=result.url, rev=result.rev,
                    nar_hash=result.nar_hash, last_modified=result.last_modified,
                    inputs=nested,
                )
            elif sub in inp.follows:
                result = resolve_path(inp.follows[sub], path)
            else:
                result = leaf(path, "")
        finally:
            visiting.pop()
        resolved[path] = result
        return result

    for inp in inputs:
        resolve_path(inp.name, inp.name)
        for sub, target in inp.follows.items():
            logger.debug("input %s/%s follows %s", inp.name, sub, target)

    return {inp.name: resolved[inp.name] for inp in inputs}
