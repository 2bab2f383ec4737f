"""Plan generation.

This module turns a source tree into a final BuildPlan:
- Provider selection (explicit names or detection)
- Config file loading
- Layering provider, config file, environment and caller plans

Layers are merged lowest priority first::

    provider plans < config file plan < PLANPACK_* environment < caller plan
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from planpack.errors import DetectionError, PlanParseError, PlanpackError
from planpack.plan.build_plan import BuildPlan
from planpack.plan.environment import Environment
from planpack.plan.io import load_plan_file
from planpack.plan.overrides import PlanOverrides
from planpack.providers import Provider, get_provider, get_providers
from planpack.providers.app import App

logger = logging.getLogger(__name__)

# Config files picked up from the app root when none is named explicitly
DEFAULT_CONFIG_FILES = ("planpack.json", "planpack.yaml", "planpack.yml")


@dataclass
class GeneratePlanOptions:
    """Inputs to plan generation besides the source tree.

    Attributes:
        plan: Caller-supplied plan, merged with the highest priority.
        config_file: Plan file path, relative to the app root unless absolute.
    """

    plan: BuildPlan | None = None
    config_file: str | None = None


def resolve_config_file(
    app: App,
    env: Environment,
    config_file: str | None,
) -> Path | None:
    """Find the config file to use, if any.

    An explicitly named file (argument first, then PLANPACK_CONFIG_FILE) is
    returned even if missing so loading reports it. Otherwise the first
    existing default file is used.
    """
    named = config_file or env.get_config_variable("CONFIG_FILE")
    if named:
        path = Path(named).expanduser()
        return path if path.is_absolute() else app.source / path

    for candidate in DEFAULT_CONFIG_FILES:
        if app.includes_file(candidate):
            return app.source / candidate
    return None


def load_config_plan(
    app: App,
    env: Environment,
    config_file: str | None,
) -> BuildPlan | None:
    """Load the config file plan.

    Raises:
        PlanParseError: If the named file is missing or invalid.
    """
    path = resolve_config_file(app, env, config_file)
    if path is None:
        return None
    logger.debug("Loading config file %s", path)
    return load_plan_file(path)


def select_providers(
    app: App,
    env: Environment,
    explicit: Sequence[str] | None,
    providers: Sequence[Provider],
) -> list[Provider]:
    """Choose the providers that contribute to the plan.

    Args:
        app: Source tree.
        env: Build environment.
        explicit: Provider names requested by the caller or config file;
            when given, detection is skipped.
        providers: Registered providers, in detection order.

    Returns:
        Providers to use, in merge order. May be empty.

    Raises:
        DetectionError: If a named provider is unknown or detection fails.
    """
    if explicit:
        return [get_provider(name, list(providers)) for name in explicit]

    selected: list[Provider] = []
    for provider in providers:
        try:
            matched = provider.detect(app, env)
        except PlanpackError:
            raise
        except Exception as e:
            raise DetectionError(
                f"Provider '{provider.name}' failed during detection: {e}"
            ) from e
        if matched:
            selected.append(provider)
    return selected


def _explicit_provider_names(*plans: BuildPlan | None) -> list[str] | None:
    """Return the provider list of the highest-priority plan naming one."""
    for plan in plans:
        if plan is not None and plan.providers:
            return plan.providers
    return None


def _provider_plan(provider: Provider, app: App, env: Environment) -> BuildPlan | None:
    try:
        return provider.get_build_plan(app, env)
    except PlanpackError:
        raise
    except Exception as e:
        raise DetectionError(
            f"Provider '{provider.name}' failed to generate a plan: {e}"
        ) from e


def get_plan_providers(
    path: str | Path,
    envs: Sequence[str] | None,
    options: GeneratePlanOptions,
    providers: Sequence[Provider] | None = None,
) -> list[str]:
    """Run detection only.

    Args:
        path: Application source directory.
        envs: Build environment as ``KEY=VALUE`` strings.
        options: Generation options (caller plan, config file).
        providers: Registered providers; defaults to the built-ins.

    Returns:
        Names of the applicable providers. Empty if none apply.

    Raises:
        DetectionError: If the path is unusable or a provider fails.
        PlanParseError: If the environment or config file is malformed.
    """
    app = App(path)
    env = Environment.from_envs(envs)
    file_plan = load_config_plan(app, env, options.config_file)
    registered = list(providers) if providers is not None else get_providers()

    explicit = _explicit_provider_names(options.plan, file_plan)
    return [p.name for p in select_providers(app, env, explicit, registered)]


def generate_build_plan(
    path: str | Path,
    envs: Sequence[str] | None,
    options: GeneratePlanOptions,
    providers: Sequence[Provider] | None = None,
) -> BuildPlan:
    """Generate the final build plan for a source tree.

    Args:
        path: Application source directory.
        envs: Build environment as ``KEY=VALUE`` strings.
        options: Generation options (caller plan, config file).
        providers: Registered providers; defaults to the built-ins.

    Returns:
        Final BuildPlan. An empty plan is valid when nothing applies.

    Raises:
        DetectionError: If the path is unusable or a provider fails.
        PlanParseError: If the environment or config file is malformed.
    """
    app = App(path)
    env = Environment.from_envs(envs)
    file_plan = load_config_plan(app, env, options.config_file)
    registered = list(providers) if providers is not None else get_providers()

    explicit = _explicit_provider_names(options.plan, file_plan)
    selected = select_providers(app, env, explicit, registered)
    if not selected:
        logger.info("No provider detected for %s", app.source)

    layers: list[BuildPlan] = []
    for provider in selected:
        provider_plan = _provider_plan(provider, app, env)
        if provider_plan is not None:
            layers.append(provider_plan)

    if file_plan is not None:
        layers.append(file_plan)
    layers.append(PlanOverrides.from_environment(env).to_plan())
    if options.plan is not None:
        layers.append(options.plan)

    plan = BuildPlan.merge_plans(layers)
    try:
        plan.add_variables(env.user_variables())
    except ValidationError as e:
        raise PlanParseError(f"Invalid environment variables: {e}") from e
    plan.providers = [p.name for p in selected]

    # Fail early on dependency cycles
    plan.ordered_phases()

    logger.debug(
        "Generated plan for %s with phases: %s",
        app.source,
        ", ".join(plan.phases) or "(none)",
    )
    return plan


__all__ = [
    "DEFAULT_CONFIG_FILES",
    "GeneratePlanOptions",
    "generate_build_plan",
    "get_plan_providers",
    "load_config_plan",
    "resolve_config_file",
    "select_providers",
]
