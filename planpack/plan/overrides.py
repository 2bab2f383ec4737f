"""Explicit plan overrides.

Overrides are the per-phase values a caller (or the ``PLANPACK_*`` build
environment) supplies directly instead of as a full plan. A phase is only
added to the override plan when one of its values was given, so an absent
option never shadows a detected phase.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from planpack.errors import PlanParseError
from planpack.plan.build_plan import BuildPlan
from planpack.plan.environment import Environment
from planpack.plan.phase import Phase, StartPhase


class PlanOverrides(BaseModel):
    """Per-phase overrides.

    Attributes:
        install_cmds: Commands for the install phase.
        build_cmds: Commands for the build phase.
        start_cmd: Start command.
        apt_pkgs: Apt packages for the setup phase.
        nix_pkgs: System packages for the setup phase.
        nix_libs: Library packages for the setup phase.
    """

    model_config = ConfigDict(extra="forbid")

    install_cmds: list[str] | None = Field(default=None)
    build_cmds: list[str] | None = Field(default=None)
    start_cmd: str | None = Field(default=None)
    apt_pkgs: list[str] | None = Field(default=None)
    nix_pkgs: list[str] | None = Field(default=None)
    nix_libs: list[str] | None = Field(default=None)

    @classmethod
    def from_environment(cls, env: Environment) -> "PlanOverrides":
        """Read overrides from ``PLANPACK_*`` build environment variables.

        Commands are taken verbatim; package lists are whitespace separated.
        """
        install_cmd = env.get_config_variable("INSTALL_CMD")
        build_cmd = env.get_config_variable("BUILD_CMD")
        pkgs = env.get_config_variable("PKGS")
        apt_pkgs = env.get_config_variable("APT_PKGS")
        libs = env.get_config_variable("LIBS")

        return cls(
            install_cmds=[install_cmd] if install_cmd else None,
            build_cmds=[build_cmd] if build_cmd else None,
            start_cmd=env.get_config_variable("START_CMD"),
            apt_pkgs=apt_pkgs.split() if apt_pkgs else None,
            nix_pkgs=pkgs.split() if pkgs else None,
            nix_libs=libs.split() if libs else None,
        )

    def to_plan(self) -> BuildPlan:
        """Build the override plan, containing only the phases given.

        Raises:
            PlanParseError: If a package or library entry is empty.
        """
        try:
            return self._build_plan()
        except ValidationError as e:
            raise PlanParseError(f"Invalid plan overrides: {e}") from e

    def _build_plan(self) -> BuildPlan:
        plan = BuildPlan()

        if (
            self.apt_pkgs is not None
            or self.nix_pkgs is not None
            or self.nix_libs is not None
        ):
            setup = Phase.setup(self.nix_pkgs)
            if self.apt_pkgs is not None:
                setup.add_apt_pkgs(self.apt_pkgs)
            if self.nix_libs is not None:
                setup.add_nix_libs(self.nix_libs)
            plan.add_phase(setup)

        if self.install_cmds is not None:
            plan.add_phase(Phase.install(self.install_cmds))

        if self.build_cmds is not None:
            plan.add_phase(Phase.build(self.build_cmds))

        if self.start_cmd is not None:
            plan.set_start_phase(StartPhase.new(self.start_cmd))

        return plan


__all__ = ["PlanOverrides"]
