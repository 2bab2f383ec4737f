"""Tests for explicit plan overrides."""

import pytest

from planpack.errors import PlanParseError
from planpack.plan.environment import Environment
from planpack.plan.overrides import PlanOverrides


class TestToPlan:
    """Test PlanOverrides.to_plan."""

    def test_no_overrides_is_empty(self):
        """Nothing given yields the empty plan."""
        assert PlanOverrides().to_plan().is_empty()

    def test_only_given_phases(self):
        """Install ["a"] and build ["b"] produce exactly those phases."""
        plan = PlanOverrides(install_cmds=["a"], build_cmds=["b"]).to_plan()
        assert list(plan.phases) == ["install", "build"]
        assert plan.get_phase("install").cmds == ["a"]
        assert plan.get_phase("build").cmds == ["b"]
        assert plan.get_phase("setup") is None
        assert plan.start_phase is None

    def test_empty_list_is_given(self):
        """An explicitly empty command list still adds the phase."""
        plan = PlanOverrides(install_cmds=[]).to_plan()
        assert plan.get_phase("install").cmds == []

    def test_packages_make_setup(self):
        """Any package list adds a setup phase carrying all of them."""
        plan = PlanOverrides(
            nix_pkgs=["ffmpeg"], apt_pkgs=["curl"], nix_libs=["zlib"]
        ).to_plan()
        setup = plan.get_phase("setup")
        assert setup.nix_pkgs == ["ffmpeg"]
        assert setup.apt_pkgs == ["curl"]
        assert setup.nix_libs == ["zlib"]

    def test_apt_only_setup(self):
        """Apt packages alone leave the other lists absent."""
        setup = PlanOverrides(apt_pkgs=["curl"]).to_plan().get_phase("setup")
        assert setup.apt_pkgs == ["curl"]
        assert setup.nix_pkgs is None
        assert setup.nix_libs is None

    def test_start(self):
        """A start command sets the start phase."""
        plan = PlanOverrides(start_cmd="./serve").to_plan()
        assert plan.start_cmd == "./serve"
        assert plan.phases == {}

    def test_empty_package_rejected(self):
        """Blank package entries raise a parse error for every list."""
        for field in ("nix_pkgs", "apt_pkgs", "nix_libs"):
            with pytest.raises(PlanParseError, match="Invalid plan overrides"):
                PlanOverrides(**{field: ["ffmpeg", ""]}).to_plan()


class TestFromEnvironment:
    """Test PlanOverrides.from_environment."""

    def test_reads_control_variables(self):
        """PLANPACK_* variables become overrides."""
        env = Environment.from_envs(
            [
                "PLANPACK_INSTALL_CMD=pip install .",
                "PLANPACK_BUILD_CMD=make all",
                "PLANPACK_START_CMD=./serve",
                "PLANPACK_PKGS=ffmpeg  imagemagick",
                "PLANPACK_APT_PKGS=curl",
                "PLANPACK_LIBS=zlib",
            ]
        )
        overrides = PlanOverrides.from_environment(env)
        assert overrides.install_cmds == ["pip install ."]
        assert overrides.build_cmds == ["make all"]
        assert overrides.start_cmd == "./serve"
        assert overrides.nix_pkgs == ["ffmpeg", "imagemagick"]
        assert overrides.apt_pkgs == ["curl"]
        assert overrides.nix_libs == ["zlib"]

    def test_unrelated_variables_ignored(self):
        """Ordinary variables do not produce overrides."""
        overrides = PlanOverrides.from_environment(
            Environment.from_envs(["INSTALL_CMD=x"])
        )
        assert overrides == PlanOverrides()
