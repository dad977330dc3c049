"""nixiepkgs: flake evaluation on top of nixie's store primitives."""

from nixiepkgs.catalog import Catalog, CatalogPath
from nixiepkgs.dev_shell import DevShell, Library, ShellSpec
from nixiepkgs.drv import Package, drv
from nixiepkgs.errors import (
    EvalError,
    LockMismatch,
    MissingLibrary,
    MissingTool,
    UnresolvableReference,
    UnsupportedSystem,
)
from nixiepkgs.inputs import Input, Pin, ResolvedSource, resolve
from nixiepkgs.overlay import compose
from nixiepkgs.rust_package import PackageSpec
from nixiepkgs.systems import ALL_SYSTEMS, DEFAULT_SYSTEMS, OutputTree, each_system, evaluate

__all__ = [
    "ALL_SYSTEMS",
    "Catalog",
    "CatalogPath",
    "DEFAULT_SYSTEMS",
    "DevShell",
    "EvalError",
    "Input",
    "Library",
    "LockMismatch",
    "MissingLibrary",
    "MissingTool",
    "OutputTree",
    "Package",
    "PackageSpec",
    "Pin",
    "ResolvedSource",
    "ShellSpec",
    "UnresolvableReference",
    "UnsupportedSystem",
    "compose",
    "drv",
    "each_system",
    "evaluate",
    "resolve",
]
