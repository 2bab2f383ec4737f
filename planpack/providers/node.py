"""Node.js provider.

Detects package.json. The package manager is chosen from the lockfile and
the Node major version from ``engines.node`` or PLANPACK_NODE_VERSION.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from planpack.plan.build_plan import BuildPlan
from planpack.plan.phase import Phase, StartPhase

if TYPE_CHECKING:
    from planpack.plan.environment import Environment
    from planpack.providers.app import App

DEFAULT_NODE_MAJOR = 18
SUPPORTED_NODE_MAJORS = (16, 18, 20, 22)

NPM_CACHE_DIR = "/root/.npm"
NODE_MODULES_CACHE_DIR = "node_modules/.cache"


class NodeProvider:
    """Provider for Node.js applications."""

    name = "node"

    def detect(self, app: App, env: Environment) -> bool:
        return app.includes_file("package.json")

    def get_build_plan(self, app: App, env: Environment) -> BuildPlan | None:
        package_json = app.read_json("package.json")
        if not isinstance(package_json, dict):
            package_json = {}
        scripts = package_json.get("scripts") or {}
        manager = self.package_manager(app)

        setup = Phase.setup([f"nodejs_{self.node_major(package_json, env)}"])
        if manager != "npm":
            setup.add_nix_pkgs([manager])

        install = Phase.install([self.install_command(app, manager)])
        install.add_path("/app/node_modules/.bin")
        install.add_cache_directory(NPM_CACHE_DIR)

        phases = [setup, install]
        if "build" in scripts:
            build = Phase.build([self.run_script(manager, "build")])
            build.add_cache_directory(NODE_MODULES_CACHE_DIR)
            phases.append(build)

        plan = BuildPlan.new(phases)
        plan.add_variables(
            {"NODE_ENV": "production", "NPM_CONFIG_PRODUCTION": "false"}
        )

        start_cmd = self.start_command(app, package_json, manager)
        if start_cmd is not None:
            plan.set_start_phase(StartPhase.new(start_cmd))
        return plan

    def package_manager(self, app: App) -> str:
        if app.includes_file("pnpm-lock.yaml"):
            return "pnpm"
        if app.includes_file("yarn.lock"):
            return "yarn"
        return "npm"

    def install_command(self, app: App, manager: str) -> str:
        if manager == "pnpm":
            return "pnpm i --frozen-lockfile"
        if manager == "yarn":
            return "yarn install --frozen-lockfile"
        if app.includes_file("package-lock.json"):
            return "npm ci"
        return "npm i"

    def run_script(self, manager: str, script: str) -> str:
        if manager == "npm":
            return f"npm run {script}"
        return f"{manager} run {script}"

    def node_major(self, package_json: dict[str, Any], env: Environment) -> int:
        """Resolve the Node major version, falling back to the default."""
        requested = env.get_config_variable("NODE_VERSION")
        if requested is None:
            engines = package_json.get("engines") or {}
            requested = engines.get("node") if isinstance(engines, dict) else None
        if not requested:
            return DEFAULT_NODE_MAJOR

        match = re.search(r"(\d+)", str(requested))
        if match is None:
            return DEFAULT_NODE_MAJOR
        major = int(match.group(1))
        return major if major in SUPPORTED_NODE_MAJORS else DEFAULT_NODE_MAJOR

    def start_command(
        self,
        app: App,
        package_json: dict[str, Any],
        manager: str,
    ) -> str | None:
        scripts = package_json.get("scripts") or {}
        if "start" in scripts:
            return self.run_script(manager, "start")
        main = package_json.get("main")
        if isinstance(main, str) and app.includes_file(main):
            return f"node {main}"
        if app.includes_file("index.js"):
            return "node index.js"
        return None


__all__ = ["NodeProvider"]
