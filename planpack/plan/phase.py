"""Pydantic models for build phases.

A phase is a named unit of build work: an ordered list of shell commands
plus the packages it needs. The start phase is the single command used to
launch the built image.

Collection fields are nullable. ``None`` means "not specified" and is
omitted on serialization, while ``[]`` means "specified as empty" and is
kept; merging and round trips preserve the difference.
"""

from collections.abc import Iterable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planpack.types import PhaseKind

# Fields merged as ordered sets; ``cmds`` is the only concatenated field
SET_FIELDS = (
    "depends_on",
    "nix_pkgs",
    "apt_pkgs",
    "nix_libs",
    "cache_directories",
    "paths",
)


def concat_lists(
    existing: list[str] | None,
    incoming: list[str] | None,
) -> list[str] | None:
    """Concatenate two optional lists, keeping absence when both are absent."""
    if existing is None and incoming is None:
        return None
    return [*(existing or []), *(incoming or [])]


def union_lists(
    existing: list[str] | None,
    incoming: list[str] | None,
) -> list[str] | None:
    """Ordered union of two optional lists, keeping first-seen order."""
    if existing is None and incoming is None:
        return None
    result = list(existing or [])
    for item in incoming or []:
        if item not in result:
            result.append(item)
    return result


class Phase(BaseModel):
    """A named unit of build work.

    Attributes:
        name: Unique identifier within a plan.
        cmds: Shell commands, in execution order.
        depends_on: Names of phases this phase runs after.
        nix_pkgs: System packages installed by the setup phase.
        apt_pkgs: Apt packages installed by the setup phase.
        nix_libs: Library packages made available at link/run time.
        cache_directories: Directories mounted as build caches while the
            phase runs.
        paths: Entries prepended to PATH for this and later phases.

    Assignments are validated, so the mutators enforce the same entry rules
    as deserialization.
    """

    model_config = ConfigDict(
        extra="forbid", populate_by_name=True, validate_assignment=True
    )

    name: Annotated[str, Field(min_length=1, description="Phase name")]
    cmds: list[str] | None = Field(default=None, description="Shell commands")
    depends_on: list[str] | None = Field(
        default=None, alias="dependsOn", description="Phases to run after"
    )
    nix_pkgs: list[str] | None = Field(
        default=None, alias="nixPkgs", description="System packages"
    )
    apt_pkgs: list[str] | None = Field(
        default=None, alias="aptPkgs", description="Apt packages"
    )
    nix_libs: list[str] | None = Field(
        default=None, alias="nixLibs", description="Library packages"
    )
    cache_directories: list[str] | None = Field(
        default=None, alias="cacheDirectories", description="Build cache mounts"
    )
    paths: list[str] | None = Field(default=None, description="PATH additions")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the name has no whitespace."""
        if any(c.isspace() for c in v):
            raise ValueError(f"phase name must not contain whitespace, got '{v}'")
        return v

    @field_validator(*SET_FIELDS)
    @classmethod
    def validate_set(cls, v: list[str] | None) -> list[str] | None:
        """Validate set entries are non-empty and drop duplicates."""
        if v is None:
            return v
        for item in v:
            if not item or not item.strip():
                raise ValueError("list items must be non-empty strings")
        return union_lists([], v)

    @classmethod
    def setup(cls, nix_pkgs: list[str] | None = None) -> "Phase":
        """Create the setup phase."""
        return cls(name=PhaseKind.SETUP.value, nix_pkgs=nix_pkgs, cmds=[])

    @classmethod
    def install(cls, cmds: list[str] | None = None) -> "Phase":
        """Create the install phase, running after setup."""
        return cls(
            name=PhaseKind.INSTALL.value,
            cmds=list(cmds or []),
            depends_on=[PhaseKind.SETUP.value],
        )

    @classmethod
    def build(cls, cmds: list[str] | None = None) -> "Phase":
        """Create the build phase, running after install."""
        return cls(
            name=PhaseKind.BUILD.value,
            cmds=list(cmds or []),
            depends_on=[PhaseKind.INSTALL.value],
        )

    @classmethod
    def custom(
        cls,
        name: str,
        cmds: list[str] | None = None,
        depends_on: list[str] | None = None,
    ) -> "Phase":
        """Create a phase with an arbitrary name."""
        return cls(name=name, cmds=list(cmds or []), depends_on=depends_on)

    @property
    def kind(self) -> PhaseKind:
        """Role of this phase, implied by its name."""
        return PhaseKind.from_name(self.name)

    def add_cmd(self, cmd: str) -> None:
        self.cmds = concat_lists(self.cmds, [cmd])

    def add_nix_pkgs(self, pkgs: Iterable[str]) -> None:
        self.nix_pkgs = union_lists(self.nix_pkgs, list(pkgs))

    def add_apt_pkgs(self, pkgs: Iterable[str]) -> None:
        self.apt_pkgs = union_lists(self.apt_pkgs, list(pkgs))

    def add_nix_libs(self, libs: Iterable[str]) -> None:
        self.nix_libs = union_lists(self.nix_libs, list(libs))

    def add_cache_directory(self, directory: str) -> None:
        self.cache_directories = union_lists(self.cache_directories, [directory])

    def add_path(self, path: str) -> None:
        self.paths = union_lists(self.paths, [path])

    def depends_on_phase(self, name: str) -> None:
        self.depends_on = union_lists(self.depends_on, [name])

    def merged_with(self, other: "Phase") -> "Phase":
        """Return a new phase combining this phase with a later one.

        Commands are concatenated (this phase first). Every set-valued field
        is an ordered union. Neither input is modified.

        Args:
            other: Phase with the same name, taking lower precedence in order
                only (its commands run after this phase's commands).

        Returns:
            New merged Phase.

        Raises:
            ValueError: If the phase names differ.
        """
        if other.name != self.name:
            raise ValueError(
                f"cannot merge phase '{other.name}' into phase '{self.name}'"
            )
        merged = self.model_copy(deep=True)
        merged.cmds = concat_lists(self.cmds, other.cmds)
        for field_name in SET_FIELDS:
            setattr(
                merged,
                field_name,
                union_lists(getattr(self, field_name), getattr(other, field_name)),
            )
        return merged


class StartPhase(BaseModel):
    """The command used to launch the built image.

    Attributes:
        cmd: Start command, run through a shell.
        run_image: Optional image for a separate runtime stage.
        user: Optional user the container runs as.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    cmd: str | None = Field(default=None, description="Start command")
    run_image: str | None = Field(
        default=None, alias="runImage", description="Runtime stage image"
    )
    user: str | None = Field(default=None, description="Runtime user")

    @classmethod
    def new(cls, cmd: str) -> "StartPhase":
        return cls(cmd=cmd)


__all__ = ["SET_FIELDS", "Phase", "StartPhase", "concat_lists", "union_lists"]
