"""Procfile provider.

Contributes only a start phase: the ``web`` process if present, otherwise
the first process listed. It is registered last so its start command wins
over language providers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from planpack.plan.build_plan import BuildPlan
from planpack.plan.phase import StartPhase

if TYPE_CHECKING:
    from planpack.plan.environment import Environment
    from planpack.providers.app import App


def parse_procfile(text: str) -> dict[str, str]:
    """Parse Procfile text into an ordered mapping of process -> command."""
    processes: dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        name, sep, command = stripped.partition(":")
        if sep and name.strip() and command.strip():
            processes[name.strip()] = command.strip()
    return processes


class ProcfileProvider:
    """Provider reading the start command from a Procfile."""

    name = "procfile"

    def detect(self, app: App, env: Environment) -> bool:
        return app.includes_file("Procfile")

    def get_build_plan(self, app: App, env: Environment) -> BuildPlan | None:
        processes = parse_procfile(app.read_file("Procfile"))
        if not processes:
            return None
        command = processes.get("web") or next(iter(processes.values()))
        return BuildPlan(start_phase=StartPhase.new(command))


__all__ = ["ProcfileProvider", "parse_procfile"]
