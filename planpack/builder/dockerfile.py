"""Dockerfile generation from a build plan.

Layout of the generated file:
1. Build stage base image and working directory
2. Package layers (nix, apt, libraries) from every phase
3. Plan variables as ENV
4. Source copy, then each phase's commands in dependency order
5. Optional runtime stage, user and start command
"""

from __future__ import annotations

import json
import posixpath
from typing import TYPE_CHECKING

from planpack.builder.cache_key import sanitize_cache_id

if TYPE_CHECKING:
    from planpack.builder.options import BuildOptions
    from planpack.config import Settings
    from planpack.plan.build_plan import BuildPlan
    from planpack.plan.phase import Phase

APP_DIR = "/app"
BUILD_STAGE = "build"
NIX_PROFILE_LIB = "/root/.nix-profile/lib"


def quote_env_value(value: str) -> str:
    """Quote a value for an ENV instruction.

    Inside double quotes Docker only unescapes ``\\"``, ``\\\\`` and ``\\$``; every
    other character, non-ASCII included, is kept as written.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def compose_nix_install(pkgs: list[str]) -> str:
    attrs = " ".join(f"nixpkgs.{pkg}" for pkg in pkgs)
    return f"RUN nix-env -iA {attrs} && nix-collect-garbage -d"


def compose_apt_install(pkgs: list[str]) -> str:
    return (
        "RUN apt-get update && apt-get install -y --no-install-recommends "
        f"{' '.join(pkgs)} && rm -rf /var/lib/apt/lists/*"
    )


def compose_cache_mounts(phase: Phase, cache_identifier: str) -> str:
    """Compose ``--mount`` flags for a phase's cache directories."""
    mounts: list[str] = []
    for directory in phase.cache_directories or []:
        target = posixpath.join(APP_DIR, directory)
        mount_id = sanitize_cache_id(f"{cache_identifier}:{target}")
        mounts.append(f"--mount=type=cache,id={mount_id},target={target}")
    return " ".join(mounts)


def compose_package_layers(phases: list[Phase]) -> list[str]:
    """Compose package installation layers for all phases, in order."""
    nix_pkgs: list[str] = []
    nix_libs: list[str] = []
    apt_pkgs: list[str] = []
    for phase in phases:
        for source, target in (
            (phase.nix_pkgs, nix_pkgs),
            (phase.nix_libs, nix_libs),
            (phase.apt_pkgs, apt_pkgs),
        ):
            target.extend(p for p in source or [] if p not in target)

    lines: list[str] = []
    if nix_pkgs or nix_libs:
        lines.append(compose_nix_install(nix_pkgs + nix_libs))
    if nix_libs:
        lines.append(f"ENV LD_LIBRARY_PATH={NIX_PROFILE_LIB}:$LD_LIBRARY_PATH")
    if apt_pkgs:
        lines.append(compose_apt_install(apt_pkgs))
    return lines


def compose_phase(phase: Phase, cache_identifier: str | None) -> list[str]:
    """Compose the instructions for one phase's commands."""
    lines = [f"# {phase.name} phase"]
    if phase.paths:
        lines.append(f"ENV PATH={':'.join(phase.paths)}:$PATH")

    mounts = compose_cache_mounts(phase, cache_identifier) if cache_identifier else ""
    for cmd in phase.cmds or []:
        lines.append(f"RUN {mounts} {cmd}" if mounts else f"RUN {cmd}")
    return lines


def generate_dockerfile(
    plan: BuildPlan,
    options: BuildOptions,
    settings: Settings,
    cache_identifier: str,
) -> str:
    """Render the Dockerfile for a plan.

    Args:
        plan: Final BuildPlan.
        options: Build options; cache mounts are omitted with ``no_cache``.
        settings: Settings providing the default base image.
        cache_identifier: Identifier cache mounts are keyed by.

    Returns:
        Dockerfile text.

    Raises:
        PlanGenerationError: If the phase dependencies contain a cycle.
    """
    phases = plan.ordered_phases()
    mount_key = cache_identifier if options.use_cache else None

    lines = [
        f"FROM {plan.build_image or settings.base_image} AS {BUILD_STAGE}",
        f"WORKDIR {APP_DIR}/",
        "",
    ]

    package_layers = compose_package_layers(phases)
    if package_layers:
        lines.extend(package_layers)
        lines.append("")

    if plan.variables:
        for key, value in plan.variables.items():
            lines.append(f"ENV {key}={quote_env_value(value)}")
        lines.append("")

    lines.append(f"COPY . {APP_DIR}/.")
    lines.append("")

    for phase in phases:
        if not phase.cmds and not phase.paths:
            continue
        lines.extend(compose_phase(phase, mount_key))
        lines.append("")

    start = plan.start_phase
    if start is not None:
        lines.append("# start")
        if start.run_image:
            lines.append(f"FROM {start.run_image}")
            lines.append(f"WORKDIR {APP_DIR}/")
            lines.append(f"COPY --from={BUILD_STAGE} {APP_DIR} {APP_DIR}")
        if start.user:
            lines.append(f"USER {start.user}")
        if start.cmd:
            lines.append(f"CMD {json.dumps(['/bin/bash', '-c', start.cmd])}")

    return "\n".join(lines).rstrip("\n") + "\n"


__all__ = [
    "compose_apt_install",
    "compose_cache_mounts",
    "compose_nix_install",
    "compose_package_layers",
    "compose_phase",
    "generate_dockerfile",
    "quote_env_value",
]
