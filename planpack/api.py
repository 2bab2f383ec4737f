"""Boundary functions: detect, plan and build.

These are thin wrappers wiring the plan generator and the image builder
together. Typed planpack errors propagate unchanged; their classes derive
from OSError, ValueError or RuntimeError so callers can handle them with
standard ``except`` clauses.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from planpack.builder.docker import DockerImageBuilder
from planpack.builder.options import BuildOptions
from planpack.builder.runner import BuildResult
from planpack.config import Settings
from planpack.errors import BuildExecutionError, PlanParseError
from planpack.plan.build_plan import BuildPlan
from planpack.plan.generator import (
    GeneratePlanOptions,
    generate_build_plan,
    get_plan_providers,
)
from planpack.plan.io import plan_from_json_string, plan_to_string
from planpack.plan.overrides import PlanOverrides
from planpack.types import PlanFormat

logger = logging.getLogger(__name__)


def detect(
    path: str | Path,
    env: Sequence[str] | None = None,
    config_file: str | None = None,
) -> str:
    """Detect the providers that apply to a source tree.

    Args:
        path: Application source directory.
        env: Build environment as ``KEY=VALUE`` strings.
        config_file: Optional plan config file.

    Returns:
        Provider names joined with ", " (empty if none apply).

    Raises:
        DetectionError: If detection fails.
        PlanParseError: If the environment or config file is malformed.
    """
    providers = get_plan_providers(
        path, env, GeneratePlanOptions(config_file=config_file)
    )
    return ", ".join(providers)


def plan(
    path: str | Path,
    env: Sequence[str] | None = None,
    json_plan: str | None = None,
    install_cmds: list[str] | None = None,
    build_cmds: list[str] | None = None,
    start_cmd: str | None = None,
    apt_pkgs: list[str] | None = None,
    nix_pkgs: list[str] | None = None,
    nix_libs: list[str] | None = None,
    config_file: str | None = None,
    format: PlanFormat = PlanFormat.JSON,
) -> str:
    """Generate the serialized build plan for a source tree.

    The explicit arguments form an override plan that is layered on top of
    ``json_plan``; together they take priority over detection.

    Args:
        path: Application source directory.
        env: Build environment as ``KEY=VALUE`` strings.
        json_plan: Optional serialized plan (JSON).
        install_cmds: Install phase commands.
        build_cmds: Build phase commands.
        start_cmd: Start command.
        apt_pkgs: Apt packages for the setup phase.
        nix_pkgs: System packages for the setup phase.
        nix_libs: Library packages for the setup phase.
        config_file: Optional plan config file.
        format: Output format.

    Returns:
        Final plan serialized in ``format``.

    Raises:
        DetectionError: If detection fails.
        PlanParseError: If ``json_plan``, an override argument, the
            environment or the config file is malformed.
        PlanGenerationError: If the final plan cannot be ordered.
    """
    try:
        overrides = PlanOverrides(
            install_cmds=install_cmds,
            build_cmds=build_cmds,
            start_cmd=start_cmd,
            apt_pkgs=apt_pkgs,
            nix_pkgs=nix_pkgs,
            nix_libs=nix_libs,
        )
    except ValidationError as e:
        raise PlanParseError(f"Invalid plan overrides: {e}") from e

    caller_plan = overrides.to_plan()
    if json_plan is not None:
        caller_plan = BuildPlan.merge_plans(
            [plan_from_json_string(json_plan), caller_plan]
        )

    final_plan = generate_build_plan(
        path,
        env,
        GeneratePlanOptions(plan=caller_plan, config_file=config_file),
    )
    return plan_to_string(final_plan, format)


def build(
    path: str | Path,
    name: str,
    options: BuildOptions | None = None,
    *,
    env: Sequence[str] | None = None,
    config_file: str | None = None,
    raise_on_failure: bool = True,
    settings: Settings | None = None,
    **option_fields: Any,
) -> BuildResult | None:
    """Generate a plan for a source tree and build an image from it.

    Build options come either from ``options`` or from keyword fields named
    after BuildOptions attributes, not both.

    Args:
        path: Application source directory.
        name: Image name.
        options: Build options.
        env: Build environment as ``KEY=VALUE`` strings.
        config_file: Optional plan config file.
        raise_on_failure: Raise on build execution failure; when False the
            failure is logged and None is returned.
        settings: Settings override.
        **option_fields: BuildOptions fields (e.g. ``tags``, ``no_cache``).

    Returns:
        BuildResult, or None if the build failed and ``raise_on_failure`` is
        False.

    Raises:
        TypeError: If both ``options`` and option fields are given.
        pydantic.ValidationError: If option fields are invalid.
        DetectionError: If detection fails.
        PlanParseError: If the environment or config file is malformed.
        BuildExecutionError: If the build fails and ``raise_on_failure``.
    """
    if options is not None and option_fields:
        raise TypeError("pass either options or option fields, not both")

    if options is not None:
        build_options = options.model_copy(update={"name": name})
    else:
        build_options = BuildOptions(name=name, **option_fields)

    final_plan = generate_build_plan(
        path, env, GeneratePlanOptions(config_file=config_file)
    )
    builder = DockerImageBuilder(build_options, settings=settings)

    try:
        return builder.create_image(path, final_plan)
    except BuildExecutionError as e:
        if raise_on_failure:
            raise
        logger.error("Build of %s failed (%s): %s", name, e.code, e)
        return None


__all__ = ["build", "detect", "plan"]
