"""Language providers.

A provider recognizes one kind of source tree and proposes a baseline
BuildPlan for it. Detection heuristics live entirely behind this contract;
the plan generator only calls ``detect`` and ``get_build_plan``.

Built-in providers are returned by ``get_providers()`` in detection order.
Later providers take priority when their plans are merged, which is why the
Procfile provider comes last.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from planpack.errors import DetectionError

if TYPE_CHECKING:
    from planpack.plan.build_plan import BuildPlan
    from planpack.plan.environment import Environment
    from planpack.providers.app import App


class Provider(Protocol):
    """Contract every provider implements."""

    name: str

    def detect(self, app: App, env: Environment) -> bool:
        """Return True if this provider applies to the app."""
        ...

    def get_build_plan(self, app: App, env: Environment) -> BuildPlan | None:
        """Return the baseline plan for the app, or None for no plan."""
        ...


def get_providers() -> list[Provider]:
    """Return fresh instances of the built-in providers, in detection order."""
    from planpack.providers.node import NodeProvider
    from planpack.providers.procfile import ProcfileProvider
    from planpack.providers.python import PythonProvider

    return [PythonProvider(), NodeProvider(), ProcfileProvider()]


def get_provider(name: str, providers: list[Provider] | None = None) -> Provider:
    """Look up a provider by name.

    Raises:
        DetectionError: If no provider has that name.
    """
    candidates = providers if providers is not None else get_providers()
    for provider in candidates:
        if provider.name == name:
            return provider
    known = ", ".join(p.name for p in candidates)
    raise DetectionError(f"Unknown provider '{name}' (available: {known})")


__all__ = ["Provider", "get_provider", "get_providers"]
