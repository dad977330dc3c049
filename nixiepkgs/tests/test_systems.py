"""Tests for per-system evaluation."""

import threading

import pytest

from nixiepkgs.errors import MissingLibrary, MissingTool, UnresolvableReference, UnsupportedSystem
from nixiepkgs.flake import DEV_SHELL, OVERLAYS, package_spec
from nixiepkgs.pkgs.nixpkgs import make_base_catalog
from nixiepkgs.systems import ALL_SYSTEMS, DEFAULT_SYSTEMS, each_system, evaluate

SRC = "/nix/store/00000000000000000000000000000000-source"
TWO = ("x86_64-linux", "aarch64-linux")


@pytest.fixture
def run(resolved, cargo_lock):
    def run(systems, supported=DEFAULT_SYSTEMS, **kw):
        return evaluate(
            systems, resolved, OVERLAYS, package_spec(SRC, cargo_lock), DEV_SHELL,
            supported=supported, **kw,
        )
    return run


def test_default_systems():
    assert DEFAULT_SYSTEMS == ("aarch64-darwin", "aarch64-linux", "x86_64-darwin", "x86_64-linux")
    assert set(DEFAULT_SYSTEMS) < set(ALL_SYSTEMS)


def test_one_package_and_shell_per_system(run):
    tree = run(DEFAULT_SYSTEMS)
    assert tree.systems == sorted(DEFAULT_SYSTEMS)
    assert sorted(tree.dev_shells) == sorted(DEFAULT_SYSTEMS)
    for system in DEFAULT_SYSTEMS:
        assert sorted(tree.packages[system]) == ["default", "nix-deploy"]
        assert tree.packages[system]["default"] is tree.packages[system]["nix-deploy"]
        assert list(tree.dev_shells[system]) == ["default"]


def test_two_systems_two_distinct_derivations(run, resolved):
    tree = run(TWO)
    assert sorted(tree.packages) == sorted(TWO)
    x86 = tree.packages["x86_64-linux"]["nix-deploy"]
    arm = tree.packages["aarch64-linux"]["nix-deploy"]
    assert x86.drv_path != arm.drv_path
    for system, pkg in (("x86_64-linux", x86), ("aarch64-linux", arm)):
        openssl = make_base_catalog(system, resolved["nixpkgs"])["openssl"]
        assert pkg.drv.platform == system
        assert pkg.drv.env["PKG_CONFIG_PATH"] == openssl.outputs["dev"] + "/lib/pkgconfig"
    assert "x86_64-darwin" not in tree.packages


def test_unsupported_system(run):
    with pytest.raises(UnsupportedSystem) as exc:
        run(["x86_64-linux", "x86_64-windows"])
    assert exc.value.name == "x86_64-windows"


def test_injected_system_set(run):
    tree = run(["riscv64-linux"], supported=ALL_SYSTEMS)
    assert tree.systems == ["riscv64-linux"]
    with pytest.raises(UnsupportedSystem):
        run(["aarch64-darwin"], supported=("x86_64-linux",))


def test_other_systems_do_not_affect_a_system(run):
    alone = run(["x86_64-linux"])
    together = run(DEFAULT_SYSTEMS)
    assert alone.packages["x86_64-linux"]["nix-deploy"] == together.packages["x86_64-linux"]["nix-deploy"]


def test_evaluation_is_byte_identical(run):
    assert run(DEFAULT_SYSTEMS).to_json() == run(DEFAULT_SYSTEMS, jobs=1).to_json()


def test_missing_tool_fails_whole_evaluation(run, resolved):
    def without_pkg_config(system, nixpkgs):
        return make_base_catalog(system, nixpkgs).without("pkg-config")

    with pytest.raises(MissingTool) as exc:
        run(TWO, base_catalog=without_pkg_config)
    assert exc.value.name == "pkg-config"


def test_one_failing_system_fails_all(run):
    def broken_on_arm(system, nixpkgs):
        catalog = make_base_catalog(system, nixpkgs)
        return catalog.without("zlib") if system.startswith("aarch64") else catalog

    with pytest.raises(MissingLibrary) as exc:
        run(TWO, base_catalog=broken_on_arm)
    assert exc.value.name == "zlib"


def test_missing_catalog_input(resolved, cargo_lock):
    with pytest.raises(UnresolvableReference):
        evaluate(TWO, {}, OVERLAYS, package_spec(SRC, cargo_lock), DEV_SHELL)


def test_each_catalog_is_fresh(run):
    seen = []
    lock = threading.Lock()

    def recording(system, nixpkgs):
        catalog = make_base_catalog(system, nixpkgs)
        with lock:
            seen.append(catalog)
        return catalog

    run(DEFAULT_SYSTEMS, base_catalog=recording)
    assert sorted(c.system for c in seen) == sorted(DEFAULT_SYSTEMS)
    assert len({id(c) for c in seen}) == len(DEFAULT_SYSTEMS)


def test_each_system_regroups_by_kind():
    result = each_system(TWO, lambda s: {"checks": s.upper(), "apps": len(s)})
    assert result == {
        "checks": {"aarch64-linux": "AARCH64-LINUX", "x86_64-linux": "X86_64-LINUX"},
        "apps": {"aarch64-linux": 13, "x86_64-linux": 12},
    }
    assert list(result["checks"]) == ["aarch64-linux", "x86_64-linux"]


def test_each_system_validates_before_running():
    calls = []
    with pytest.raises(UnsupportedSystem):
        each_system(["x86_64-linux", "sparc-solaris"], calls.append)
    assert calls == []


def test_empty_system_set(run):
    tree = run([])
    assert tree.packages == {} and tree.dev_shells == {}
