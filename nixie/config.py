"""Runtime configuration.

Defaults, overridden by ``NIXIE_*`` environment variables, overridden by
command line flags:

    NIXIE_FLAKE=/src/nix-deploy NIXIE_JOBS=2 nixie show
"""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

_MACHINES = {"amd64": "x86_64", "arm64": "aarch64"}


def current_system() -> str:
    """The host's system identifier, e.g. ``x86_64-linux``."""
    machine = platform.machine().lower()
    machine = _MACHINES.get(machine, machine)
    return f"{machine}-{platform.system().lower()}"


@dataclass(frozen=True)
class NixieConfig:
    flake_dir: str = "."
    system: str = ""
    jobs: int | None = None
    log_level: str = "WARNING"

    @property
    def target_system(self) -> str:
        return self.system or current_system()

    def with_overrides(self, **overrides) -> NixieConfig:
        """Apply non-None overrides, e.g. from argparse."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(environ: dict[str, str] | None = None) -> NixieConfig:
    env = os.environ if environ is None else environ
    config = NixieConfig()
    jobs = env.get("NIXIE_JOBS")
    if jobs is not None:
        try:
            config = replace(config, jobs=int(jobs))
        except ValueError:
            logger.warning("ignoring NIXIE_JOBS=%r: not an integer", jobs)
    return config.with_overrides(
        flake_dir=env.get("NIXIE_FLAKE"),
        system=env.get("NIXIE_SYSTEM"),
        log_level=env.get("NIXIE_LOG_LEVEL"),
    )
