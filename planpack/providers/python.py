"""Python provider.

Detects requirements.txt, pyproject.toml or setup.py and installs the
project into a virtualenv at /opt/venv.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from planpack.plan.build_plan import BuildPlan
from planpack.plan.phase import Phase, StartPhase

if TYPE_CHECKING:
    from planpack.plan.environment import Environment
    from planpack.providers.app import App

VENV_PATH = "/opt/venv"
PIP_CACHE_DIR = "/root/.cache/pip"
DEFAULT_PYTHON_PACKAGE = "python3"

# Nix attribute names for supported interpreter versions
PYTHON_PACKAGES = {
    "3.9": "python39",
    "3.10": "python310",
    "3.11": "python311",
    "3.12": "python312",
    "3.13": "python313",
}

ENTRYPOINTS = ("main.py", "app.py", "server.py")


class PythonProvider:
    """Provider for Python applications."""

    name = "python"

    def detect(self, app: App, env: Environment) -> bool:
        return (
            app.includes_file("requirements.txt")
            or app.includes_file("pyproject.toml")
            or app.includes_file("setup.py")
        )

    def get_build_plan(self, app: App, env: Environment) -> BuildPlan | None:
        setup = Phase.setup([self.python_package(app, env)])

        install = Phase.install()
        install.add_cmd(f"python -m venv --copies {VENV_PATH}")
        if app.includes_file("requirements.txt"):
            install.add_cmd(
                f". {VENV_PATH}/bin/activate && pip install -r requirements.txt"
            )
        else:
            install.add_cmd(f". {VENV_PATH}/bin/activate && pip install .")
        install.add_path(f"{VENV_PATH}/bin")
        install.add_cache_directory(PIP_CACHE_DIR)

        plan = BuildPlan.new([setup, install])
        plan.add_variables(
            {
                "PYTHONUNBUFFERED": "1",
                "PIP_DISABLE_PIP_VERSION_CHECK": "1",
                "VIRTUAL_ENV": VENV_PATH,
            }
        )

        start_cmd = self.start_command(app)
        if start_cmd is not None:
            plan.set_start_phase(StartPhase.new(start_cmd))
        return plan

    def python_package(self, app: App, env: Environment) -> str:
        """Pick the interpreter package from PLANPACK_PYTHON_VERSION or .python-version."""
        version = env.get_config_variable("PYTHON_VERSION")
        if version is None and app.includes_file(".python-version"):
            version = app.read_file(".python-version").strip()
        if not version:
            return DEFAULT_PYTHON_PACKAGE

        match = re.match(r"^(\d+\.\d+)", version)
        if match is None:
            return DEFAULT_PYTHON_PACKAGE
        return PYTHON_PACKAGES.get(match.group(1), DEFAULT_PYTHON_PACKAGE)

    def start_command(self, app: App) -> str | None:
        for entrypoint in ENTRYPOINTS:
            if app.includes_file(entrypoint):
                return f"python {entrypoint}"
        return None


__all__ = ["PythonProvider"]
