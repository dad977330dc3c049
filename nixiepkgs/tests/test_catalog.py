"""Tests for catalogs and overlay composition."""

import pytest

from nixiepkgs.catalog import Catalog, CatalogPath, resolve_env
from nixiepkgs.drv import drv
from nixiepkgs.errors import MissingLibrary, MissingTool
from nixiepkgs.overlay import compose


def _pkg(name, system="x86_64-linux", **kw):
    return drv(name=name, builder="/bin/sh", system=system, **kw)


@pytest.fixture
def base():
    return Catalog("x86_64-linux", {"zlib": _pkg("zlib"), "openssl": _pkg("openssl", output_names=["dev", "out"])})


def test_catalog_is_read_only(base):
    with pytest.raises(TypeError):
        base["zlib"] = _pkg("other")


def test_extend_copies(base):
    ext = base.extend({"pkg-config": _pkg("pkg-config")})
    assert "pkg-config" in ext
    assert "pkg-config" not in base
    assert ext.system == base.system


def test_lookups_report_name_and_system(base):
    with pytest.raises(MissingTool) as exc:
        base.tool("cmake")
    assert exc.value.name == "cmake"
    assert exc.value.system == "x86_64-linux"
    with pytest.raises(MissingLibrary, match="'libgit2'"):
        base.library("libgit2")


def test_overlays_apply_in_order(base):
    def first(prev, inputs):
        return {"a": _pkg("a")}

    def second(prev, inputs):
        return {"b": _pkg("b", deps=[prev["a"]])}

    ext = compose(base, {}, [first, second])
    assert ext["a"].drv_path in ext["b"].drv.input_drvs


def test_later_overlay_wins(base):
    def first(prev, inputs):
        return {"zlib": _pkg("zlib-first")}

    def second(prev, inputs):
        return {"zlib": _pkg("zlib-second")}

    assert compose(base, {}, [first, second])["zlib"].name == "zlib-second"
    assert compose(base, {}, [second, first])["zlib"].name == "zlib-first"
    assert base["zlib"].name == "zlib"


def test_overlay_sees_inputs(base):
    seen = []
    compose(base, {"nixpkgs": "pinned"}, [lambda prev, inputs: seen.append(inputs["nixpkgs"]) or {}])
    assert seen == ["pinned"]


def test_no_overlays_is_identity(base):
    assert dict(compose(base, {}, [])) == dict(base)


def test_catalog_path_resolution(base):
    env = resolve_env(base, {
        "PKG_CONFIG_PATH": CatalogPath("openssl", "dev", "lib/pkgconfig"),
        "ZLIB": CatalogPath("zlib"),
        "PLAIN": "verbatim",
    })
    assert env["PKG_CONFIG_PATH"] == base["openssl"].outputs["dev"] + "/lib/pkgconfig"
    assert env["ZLIB"] == base["zlib"].out
    assert env["PLAIN"] == "verbatim"


def test_catalog_path_missing_package(base):
    with pytest.raises(MissingLibrary):
        CatalogPath("libssh2").resolve(base)
