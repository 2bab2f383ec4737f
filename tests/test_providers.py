"""Tests for the built-in providers."""

import json
from pathlib import Path

import pytest

from planpack.errors import DetectionError
from planpack.plan.environment import Environment
from planpack.providers import get_provider, get_providers
from planpack.providers.app import App
from planpack.providers.node import NodeProvider
from planpack.providers.procfile import ProcfileProvider, parse_procfile
from planpack.providers.python import PythonProvider


def write_package_json(root: Path, data: dict) -> None:
    (root / "package.json").write_text(json.dumps(data))


class TestRegistry:
    """Test provider lookup."""

    def test_builtin_order(self):
        """Procfile is registered last so its start command wins."""
        assert [p.name for p in get_providers()] == ["python", "node", "procfile"]

    def test_get_provider(self):
        """Providers are found by name."""
        assert get_provider("node").name == "node"

    def test_unknown(self):
        """Unknown names list the available providers."""
        with pytest.raises(DetectionError, match="available: python, node, procfile"):
            get_provider("go")


class TestApp:
    """Test the source tree view."""

    def test_helpers(self, tmp_path):
        """File helpers answer relative to the root."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.py").write_text("")
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        app = App(tmp_path)
        assert app.includes_directory("src")
        assert not app.includes_file("src")
        assert app.has_match("src/*.py")
        assert app.read_toml("pyproject.toml")["project"]["name"] == "demo"

    def test_invalid_json(self, tmp_path):
        """Unparseable JSON is a detection error."""
        (tmp_path / "package.json").write_text("{")
        with pytest.raises(DetectionError, match="Invalid JSON"):
            App(tmp_path).read_json("package.json")

    def test_missing_file(self, tmp_path):
        """Reading a missing file is a detection error."""
        with pytest.raises(DetectionError, match="Cannot read"):
            App(tmp_path).read_file("nope.txt")


class TestPythonProvider:
    """Test PythonProvider."""

    @pytest.mark.parametrize("marker", ["requirements.txt", "pyproject.toml", "setup.py"])
    def test_detect(self, tmp_path, marker):
        """Any Python packaging marker is detected."""
        (tmp_path / marker).write_text("")
        assert PythonProvider().detect(App(tmp_path), Environment())

    def test_not_detected(self, tmp_path):
        """A tree without markers is not Python."""
        assert not PythonProvider().detect(App(tmp_path), Environment())

    def test_requirements_plan(self, tmp_path):
        """requirements.txt installs into the virtualenv."""
        (tmp_path / "requirements.txt").write_text("flask\n")
        (tmp_path / "app.py").write_text("")
        plan = PythonProvider().get_build_plan(App(tmp_path), Environment())
        install = plan.get_phase("install")
        assert install.cmds == [
            "python -m venv --copies /opt/venv",
            ". /opt/venv/bin/activate && pip install -r requirements.txt",
        ]
        assert install.paths == ["/opt/venv/bin"]
        assert install.cache_directories == ["/root/.cache/pip"]
        assert plan.variables["VIRTUAL_ENV"] == "/opt/venv"
        assert plan.start_cmd == "python app.py"

    def test_pyproject_plan(self, tmp_path):
        """Without requirements.txt the project itself is installed."""
        (tmp_path / "pyproject.toml").write_text("")
        plan = PythonProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("install").cmds[-1].endswith("pip install .")
        assert plan.start_phase is None

    def test_python_version_file(self, tmp_path):
        """.python-version selects the interpreter package."""
        (tmp_path / "requirements.txt").write_text("")
        (tmp_path / ".python-version").write_text("3.12.1\n")
        plan = PythonProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("setup").nix_pkgs == ["python312"]

    def test_python_version_env(self, tmp_path):
        """PLANPACK_PYTHON_VERSION takes precedence over the file."""
        (tmp_path / "requirements.txt").write_text("")
        (tmp_path / ".python-version").write_text("3.12\n")
        env = Environment.from_envs(["PLANPACK_PYTHON_VERSION=3.10"])
        plan = PythonProvider().get_build_plan(App(tmp_path), env)
        assert plan.get_phase("setup").nix_pkgs == ["python310"]

    def test_unsupported_version_falls_back(self, tmp_path):
        """Unknown versions use the default interpreter."""
        (tmp_path / "requirements.txt").write_text("")
        env = Environment.from_envs(["PLANPACK_PYTHON_VERSION=2.7"])
        plan = PythonProvider().get_build_plan(App(tmp_path), env)
        assert plan.get_phase("setup").nix_pkgs == ["python3"]


class TestNodeProvider:
    """Test NodeProvider."""

    def test_npm_defaults(self, tmp_path):
        """A bare package.json uses npm and the default Node version."""
        write_package_json(tmp_path, {"main": "server.js"})
        (tmp_path / "server.js").write_text("")
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("setup").nix_pkgs == ["nodejs_18"]
        assert plan.get_phase("install").cmds == ["npm i"]
        assert plan.get_phase("build") is None
        assert plan.start_cmd == "node server.js"

    def test_npm_lockfile(self, tmp_path):
        """package-lock.json switches to npm ci."""
        write_package_json(tmp_path, {})
        (tmp_path / "package-lock.json").write_text("{}")
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("install").cmds == ["npm ci"]

    def test_yarn(self, tmp_path):
        """yarn.lock selects yarn and installs it."""
        write_package_json(
            tmp_path, {"scripts": {"build": "tsc", "start": "node dist/index.js"}}
        )
        (tmp_path / "yarn.lock").write_text("")
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("setup").nix_pkgs == ["nodejs_18", "yarn"]
        assert plan.get_phase("install").cmds == ["yarn install --frozen-lockfile"]
        assert plan.get_phase("build").cmds == ["yarn run build"]
        assert plan.start_cmd == "yarn run start"

    def test_pnpm(self, tmp_path):
        """pnpm-lock.yaml selects pnpm."""
        write_package_json(tmp_path, {})
        (tmp_path / "pnpm-lock.yaml").write_text("")
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("install").cmds == ["pnpm i --frozen-lockfile"]

    def test_engines_version(self, tmp_path):
        """engines.node picks the Node major version."""
        write_package_json(tmp_path, {"engines": {"node": ">=20"}})
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.get_phase("setup").nix_pkgs == ["nodejs_20"]

    def test_env_version_and_fallback(self, tmp_path):
        """PLANPACK_NODE_VERSION wins; unsupported majors fall back."""
        write_package_json(tmp_path, {"engines": {"node": "20"}})
        env = Environment.from_envs(["PLANPACK_NODE_VERSION=22"])
        plan = NodeProvider().get_build_plan(App(tmp_path), env)
        assert plan.get_phase("setup").nix_pkgs == ["nodejs_22"]

        env = Environment.from_envs(["PLANPACK_NODE_VERSION=12"])
        plan = NodeProvider().get_build_plan(App(tmp_path), env)
        assert plan.get_phase("setup").nix_pkgs == ["nodejs_18"]

    def test_no_start(self, tmp_path):
        """Without start script, main or index.js there is no start."""
        write_package_json(tmp_path, {})
        plan = NodeProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.start_phase is None


class TestProcfileProvider:
    """Test ProcfileProvider."""

    def test_parse(self):
        """Comments and blank lines are skipped; order is kept."""
        text = "# processes\nworker: celery worker\n\nweb: gunicorn app:app\n"
        assert parse_procfile(text) == {
            "worker": "celery worker",
            "web": "gunicorn app:app",
        }

    def test_web_preferred(self, tmp_path):
        """The web process is the start command."""
        (tmp_path / "Procfile").write_text("worker: celery\nweb: gunicorn app\n")
        plan = ProcfileProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.start_cmd == "gunicorn app"
        assert plan.phases == {}

    def test_first_process_fallback(self, tmp_path):
        """Without web, the first process is used."""
        (tmp_path / "Procfile").write_text("worker: celery\n")
        plan = ProcfileProvider().get_build_plan(App(tmp_path), Environment())
        assert plan.start_cmd == "celery"

    def test_empty_procfile(self, tmp_path):
        """An empty Procfile contributes nothing."""
        (tmp_path / "Procfile").write_text("\n")
        assert ProcfileProvider().get_build_plan(App(tmp_path), Environment()) is None
