#!/usr/bin/env python3
"""nixie: evaluate the nix-deploy flake for one or all systems."""

import argparse
import json
import logging
import subprocess
import sys

from nixie.config import NixieConfig, load_config
from nixiepkgs import flake
from nixiepkgs.errors import EvalError, UnresolvableReference
from nixiepkgs.lockfile import check_lock
from nixiepkgs.systems import DEFAULT_SYSTEMS

logger = logging.getLogger("nixie")


def _evaluate_one(config: NixieConfig):
    source = flake.load(config.flake_dir)
    system = config.target_system
    tree = flake.outputs(source, [system], jobs=config.jobs)
    return source, system, tree


def cmd_build(args, config: NixieConfig) -> int:
    source, system, tree = _evaluate_one(config)
    target = args.target or "default"
    packages = tree.packages[system]
    if target not in packages:
        raise UnresolvableReference(target, f"flake does not provide packages.{system}.{target}")
    pkg = packages[target]
    check_lock(source.cargo_lock, source.manifest)
    if args.json:
        json.dump({pkg.drv_path: pkg.drv.to_dict()}, sys.stdout, indent=2, sort_keys=True)
        print()
    else:
        print(pkg.drv_path)
        for name, path in sorted(pkg.outputs.items()):
            print(f"  {name}: {path}")
    return 0


def cmd_develop(args, config: NixieConfig) -> int:
    _, system, tree = _evaluate_one(config)
    shell = tree.dev_shells[system]["default"]
    env = shell.environ()
    command = args.command or [env.get("SHELL", "bash")]
    logger.info("entering %s shell on %s: %s", shell.name, system, " ".join(command))
    return subprocess.run(command, env=env).returncode


def cmd_show(args, config: NixieConfig) -> int:
    source = flake.load(config.flake_dir)
    tree = flake.outputs(source, jobs=config.jobs)
    if args.json:
        print(tree.to_json())
        return 0
    print("packages")
    for system, pkgs in sorted(tree.packages.items()):
        print(f"  {system}")
        for name, pkg in sorted(pkgs.items()):
            print(f"    {name}: package '{pkg.name}'")
    print("devShells")
    for system, shells in sorted(tree.dev_shells.items()):
        print(f"  {system}")
        for name in sorted(shells):
            print(f"    {name}: development environment")
    return 0


def cmd_systems(args, config: NixieConfig) -> int:
    for system in DEFAULT_SYSTEMS:
        print(system)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--flake", dest="flake_dir", help="Flake directory (default: .)")
    common.add_argument("--system", help="Target system (default: host)")
    common.add_argument("--jobs", "-j", type=int, help="Systems evaluated in parallel")
    common.add_argument("--verbose", "-v", action="count", default=0)

    parser = argparse.ArgumentParser(prog="nixie", description="Evaluate a flake across systems")
    sub = parser.add_subparsers(dest="command")

    # build
    p = sub.add_parser("build", parents=[common], help="Evaluate a package derivation")
    p.add_argument("target", nargs="?", help="Package name (default: default)")
    p.add_argument("--json", action="store_true", help="Print the derivation as JSON")
    p.set_defaults(func=cmd_build)

    # develop
    p = sub.add_parser("develop", parents=[common], help="Enter the development shell")
    p.add_argument("--command", "-c", nargs=argparse.REMAINDER, help="Run a command instead of $SHELL")
    p.set_defaults(func=cmd_develop)

    # show
    p = sub.add_parser("show", parents=[common], help="Show the outputs for all systems")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_show)

    # systems
    p = sub.add_parser("systems", parents=[common], help="List supported systems")
    p.set_defaults(func=cmd_systems)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    config = load_config().with_overrides(
        flake_dir=args.flake_dir, system=args.system, jobs=args.jobs,
    )
    level = {0: config.log_level.upper(), 1: "INFO"}.get(args.verbose, "DEBUG")
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args, config)
    except (EvalError, OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
