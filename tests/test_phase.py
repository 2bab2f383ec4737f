"""Tests for phase models.

These tests verify Phase/StartPhase validation, constructors and the
per-phase merge rules.
"""

import pytest
from pydantic import ValidationError

from planpack.plan.phase import Phase, StartPhase, concat_lists, union_lists
from planpack.types import PhaseKind


class TestListHelpers:
    """Test concat_lists and union_lists."""

    def test_concat_keeps_absence(self):
        """Two absent lists stay absent."""
        assert concat_lists(None, None) is None

    def test_concat_keeps_duplicates(self):
        """Concatenation keeps every entry in order."""
        assert concat_lists(["a", "b"], ["b", "c"]) == ["a", "b", "b", "c"]

    def test_concat_with_one_absent(self):
        """An absent side contributes nothing."""
        assert concat_lists(None, ["a"]) == ["a"]
        assert concat_lists([], None) == []

    def test_union_first_seen_order(self):
        """Union keeps first-seen order and drops repeats."""
        assert union_lists(["b", "a"], ["a", "c", "b"]) == ["b", "a", "c"]

    def test_union_keeps_absence(self):
        """Two absent lists stay absent."""
        assert union_lists(None, None) is None


class TestPhaseValidation:
    """Test Phase field validation."""

    def test_minimal_phase(self):
        """Only a name is required."""
        phase = Phase(name="lint")
        assert phase.name == "lint"
        assert phase.cmds is None
        assert phase.depends_on is None
        assert phase.kind == PhaseKind.CUSTOM

    def test_empty_name_rejected(self):
        """Empty names are rejected."""
        with pytest.raises(ValidationError):
            Phase(name="")

    def test_whitespace_in_name_rejected(self):
        """Names with whitespace are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Phase(name="my phase")
        assert "whitespace" in str(exc_info.value)

    def test_set_fields_deduplicated(self):
        """Set-valued fields drop duplicates on construction."""
        phase = Phase(name="setup", nix_pkgs=["nodejs", "yarn", "nodejs"])
        assert phase.nix_pkgs == ["nodejs", "yarn"]

    def test_empty_set_entry_rejected(self):
        """Blank set entries are rejected."""
        with pytest.raises(ValidationError):
            Phase(name="setup", apt_pkgs=["curl", " "])

    def test_cmds_keep_duplicates(self):
        """Commands are a sequence, not a set."""
        phase = Phase(name="build", cmds=["make", "make"])
        assert phase.cmds == ["make", "make"]

    def test_aliases_accepted(self):
        """Serialized field names populate the model."""
        phase = Phase.model_validate(
            {
                "name": "install",
                "dependsOn": ["setup"],
                "nixPkgs": ["python311"],
                "cacheDirectories": ["/root/.cache/pip"],
            }
        )
        assert phase.depends_on == ["setup"]
        assert phase.nix_pkgs == ["python311"]
        assert phase.cache_directories == ["/root/.cache/pip"]

    def test_unknown_field_rejected(self):
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            Phase.model_validate({"name": "build", "commands": ["make"]})


class TestPhaseConstructors:
    """Test the standard phase constructors."""

    def test_setup(self):
        """Setup carries packages and an empty command list."""
        phase = Phase.setup(["nodejs_18"])
        assert phase.name == "setup"
        assert phase.kind == PhaseKind.SETUP
        assert phase.nix_pkgs == ["nodejs_18"]
        assert phase.cmds == []
        assert phase.depends_on is None

    def test_install_depends_on_setup(self):
        """Install runs after setup."""
        phase = Phase.install(["npm ci"])
        assert phase.kind == PhaseKind.INSTALL
        assert phase.cmds == ["npm ci"]
        assert phase.depends_on == ["setup"]

    def test_build_depends_on_install(self):
        """Build runs after install."""
        phase = Phase.build(["npm run build"])
        assert phase.kind == PhaseKind.BUILD
        assert phase.depends_on == ["install"]

    def test_custom(self):
        """Custom phases take any name and dependencies."""
        phase = Phase.custom("migrate", ["./migrate"], depends_on=["build"])
        assert phase.kind == PhaseKind.CUSTOM
        assert phase.depends_on == ["build"]

    def test_constructor_copies_cmds(self):
        """Constructors do not alias the caller's list."""
        cmds = ["a"]
        phase = Phase.install(cmds)
        phase.add_cmd("b")
        assert cmds == ["a"]


class TestPhaseMutators:
    """Test the add_* helpers."""

    def test_add_cmd_to_absent(self):
        """Adding a command to an absent list creates it."""
        phase = Phase(name="build")
        phase.add_cmd("make")
        assert phase.cmds == ["make"]

    def test_add_packages_union(self):
        """Package helpers keep set semantics."""
        phase = Phase.setup(["a"])
        phase.add_nix_pkgs(["b", "a"])
        phase.add_apt_pkgs(["curl"])
        phase.add_apt_pkgs(["curl"])
        phase.add_nix_libs(["zlib"])
        assert phase.nix_pkgs == ["a", "b"]
        assert phase.apt_pkgs == ["curl"]
        assert phase.nix_libs == ["zlib"]

    def test_add_path_and_cache(self):
        """Paths and cache directories are sets."""
        phase = Phase.install()
        phase.add_path("/opt/venv/bin")
        phase.add_path("/opt/venv/bin")
        phase.add_cache_directory("/root/.npm")
        assert phase.paths == ["/opt/venv/bin"]
        assert phase.cache_directories == ["/root/.npm"]

    def test_depends_on_phase(self):
        """Dependencies are appended once."""
        phase = Phase.build()
        phase.depends_on_phase("lint")
        phase.depends_on_phase("install")
        assert phase.depends_on == ["install", "lint"]

    def test_empty_entries_rejected(self):
        """Mutators apply the same entry rules as construction."""
        phase = Phase.setup()
        with pytest.raises(ValidationError, match="non-empty"):
            phase.add_apt_pkgs([""])
        with pytest.raises(ValidationError, match="non-empty"):
            phase.add_nix_libs(["  "])
        with pytest.raises(ValidationError, match="non-empty"):
            phase.add_path("")
        assert phase.apt_pkgs is None
        assert phase.nix_libs is None
        assert phase.paths is None


class TestPhaseMerge:
    """Test Phase.merged_with."""

    def test_cmds_concatenate(self):
        """Commands of the later phase run after the earlier ones."""
        a = Phase.install(["a"])
        b = Phase.install(["b", "a"])
        assert a.merged_with(b).cmds == ["a", "b", "a"]

    def test_sets_union(self):
        """Set fields are unioned in first-seen order."""
        a = Phase.setup(["nodejs"])
        b = Phase.setup(["yarn", "nodejs"])
        merged = a.merged_with(b)
        assert merged.nix_pkgs == ["nodejs", "yarn"]

    def test_absent_fields_stay_absent(self):
        """Fields absent on both sides are absent in the result."""
        merged = Phase(name="x").merged_with(Phase(name="x"))
        assert merged.cmds is None
        assert merged.apt_pkgs is None

    def test_empty_list_survives(self):
        """An empty list on one side yields an empty list, not None."""
        merged = Phase(name="x", cmds=[]).merged_with(Phase(name="x"))
        assert merged.cmds == []

    def test_inputs_untouched(self):
        """Neither input is modified."""
        a = Phase.install(["a"])
        b = Phase.install(["b"])
        a.merged_with(b)
        assert a.cmds == ["a"]
        assert b.cmds == ["b"]

    def test_name_mismatch(self):
        """Phases with different names cannot be merged."""
        with pytest.raises(ValueError, match="cannot merge phase"):
            Phase.install().merged_with(Phase.build())


class TestStartPhase:
    """Test StartPhase."""

    def test_new(self):
        """new() sets only the command."""
        start = StartPhase.new("npm start")
        assert start.cmd == "npm start"
        assert start.run_image is None
        assert start.user is None

    def test_run_image_alias(self):
        """runImage is accepted and emitted."""
        start = StartPhase.model_validate({"cmd": "x", "runImage": "debian:slim"})
        assert start.run_image == "debian:slim"
        assert start.model_dump(by_alias=True, exclude_none=True) == {
            "cmd": "x",
            "runImage": "debian:slim",
        }
