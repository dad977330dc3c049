"""Per-system package catalog.

A Catalog is the Python counterpart of ``import nixpkgs { inherit system; }``:
an immutable mapping from attribute name to Package, bound to exactly one
system. Overlays never mutate a catalog; ``extend`` returns a new one
sharing nothing writable with the old.

    base = Catalog("x86_64-linux", {"zlib": zlib})
    ext = base.extend({"openssl": openssl})
    "openssl" in base   # False
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from nixiepkgs.drv import Package
from nixiepkgs.errors import MissingLibrary, MissingTool

logger = logging.getLogger(__name__)


class Catalog(Mapping):
    def __init__(self, system: str, packages: Mapping[str, Package]):
        self._system = system
        self._packages = MappingProxyType(dict(packages))

    @property
    def system(self) -> str:
        return self._system

    def __getitem__(self, name: str) -> Package:
        return self._packages[name]

    def __iter__(self):
        return iter(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"Catalog({self._system!r}, {len(self)} packages)"

    def extend(self, layer: Mapping[str, Package]) -> "Catalog":
        """Return ``self // layer``; later definitions shadow earlier ones."""
        for name in layer:
            if name in self._packages:
                logger.debug("%s: overlay shadows %r", self._system, name)
        return Catalog(self._system, {**self._packages, **layer})

    def without(self, *names: str) -> "Catalog":
        return Catalog(self._system, {k: v for k, v in self._packages.items() if k not in names})

    def tool(self, name: str) -> Package:
        """Look up a build-time tool."""
        if name not in self._packages:
            raise MissingTool(name, self._system)
        return self._packages[name]

    def library(self, name: str) -> Package:
        """Look up a link-time library."""
        if name not in self._packages:
            raise MissingLibrary(name, self._system)
        return self._packages[name]


@dataclass(frozen=True)
class CatalogPath:
    """A path inside a catalog package output, e.g. ``${pkgs.openssl.dev}/lib/pkgconfig``.

    Kept symbolic in specs and resolved against each system's catalog.
    """

    package: str
    output: str = "out"
    subpath: str = ""

    def resolve(self, catalog: Catalog) -> str:
        base = catalog.library(self.package).output(self.output)
        return f"{base}/{self.subpath}" if self.subpath else base


def resolve_env(catalog: Catalog, env) -> dict[str, str]:
    """Resolve CatalogPath values; plain strings pass through verbatim."""
    return {
        key: value.resolve(catalog) if isinstance(value, CatalogPath) else value
        for key, value in env.items()
    }
