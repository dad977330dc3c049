"""Overlay composition.

An overlay is a function ``(prev, inputs) -> layer``: it sees the
catalog built so far and returns the attributes it adds or replaces.
Composition folds left, like ``import nixpkgs { overlays = [...]; }``:

    catalog_1 = catalog_0.extend(overlay_1(catalog_0, inputs))
    catalog_2 = catalog_1.extend(overlay_2(catalog_1, inputs))

so later overlays see earlier additions, and when two overlays define
the same name the later one wins. Shadowing is allowed and not reported
as an error.
"""

import logging
from collections.abc import Callable, Mapping, Sequence

from nixiepkgs.catalog import Catalog
from nixiepkgs.drv import Package
from nixiepkgs.inputs import ResolvedSource

logger = logging.getLogger(__name__)

Overlay = Callable[[Catalog, Mapping[str, ResolvedSource]], Mapping[str, Package]]


def compose(
    base: Catalog,
    resolved: Mapping[str, ResolvedSource],
    overlays: Sequence[Overlay],
) -> Catalog:
    """Apply ``overlays`` to ``base`` in order and return the extended catalog."""
    catalog = base
    for overlay in overlays:
        layer = overlay(catalog, resolved)
        logger.debug(
            "%s: %s adds %d attributes",
            base.system, getattr(overlay, "__qualname__", overlay), len(layer),
        )
        catalog = catalog.extend(layer)
    return catalog
