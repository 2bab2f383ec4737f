"""Build plan model and merge semantics.

A BuildPlan is an insertion-ordered set of named phases plus an optional
start phase. Plans from several sources (detected, config file, environment,
caller) are layered with ``BuildPlan.merge_plans`` in increasing priority:

- phases are matched by name; new names keep their first-seen position
- commands of a repeated phase are concatenated in input order
- package, dependency, cache and path sets are unioned
- the last plan defining a start phase replaces it outright
- variables merge per key, later plans winning

Merging is associative, has the empty plan as identity, and never mutates
its inputs.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planpack.errors import PlanGenerationError
from planpack.plan.environment import ENV_NAME_PATTERN
from planpack.plan.phase import Phase, StartPhase, union_lists


def validate_variables(variables: Mapping[str, str]) -> None:
    """Check variables can be written as Dockerfile ``ENV`` instructions.

    Raises:
        ValueError: If a name is not a valid variable name, or a value holds
            a control character other than tab.
    """
    for name, value in variables.items():
        if not ENV_NAME_PATTERN.match(name):
            raise ValueError(f"invalid variable name '{name}'")
        if any((ord(c) < 32 and c != "\t") or c == "\x7f" for c in value):
            raise ValueError(f"variable '{name}' contains a control character")


class BuildPlan(BaseModel):
    """Ordered phases plus an optional start phase.

    Attributes:
        providers: Names of the providers that contributed to the plan.
        build_image: Base image override for the build stage.
        variables: Environment variables baked into the image.
        phases: Phases keyed by name, in insertion order.
        start_phase: Optional start directive.
    """

    model_config = ConfigDict(
        extra="forbid", populate_by_name=True, validate_assignment=True
    )

    providers: list[str] | None = Field(default=None, description="Provider names")
    build_image: str | None = Field(
        default=None, alias="buildImage", description="Build stage base image"
    )
    variables: dict[str, str] | None = Field(
        default=None, description="Image environment variables"
    )
    phases: dict[str, Phase] = Field(default_factory=dict, description="Phases")
    start_phase: StartPhase | None = Field(
        default=None, alias="start", description="Start phase"
    )

    @field_validator("variables")
    @classmethod
    def check_variables(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        if v is not None:
            validate_variables(v)
        return v

    @field_validator("phases", mode="before")
    @classmethod
    def coerce_phases(cls, v: Any) -> Any:
        """Accept phases as an ordered list or as a mapping keyed by name."""
        if isinstance(v, list):
            phases: dict[str, Any] = {}
            for item in v:
                if isinstance(item, Phase):
                    name = item.name
                elif isinstance(item, Mapping):
                    name = item.get("name")
                else:
                    name = None
                if name is None:
                    raise ValueError("every phase in a phase list needs a name")
                if name in phases:
                    raise ValueError(f"duplicate phase name '{name}'")
                phases[name] = item
            return phases
        if isinstance(v, Mapping):
            phases = {}
            for key, item in v.items():
                if isinstance(item, Phase):
                    name = item.name
                elif isinstance(item, Mapping):
                    name = item.get("name")
                    if name is None:
                        name = key
                        item = {**item, "name": key}
                else:
                    name = key
                if name != key:
                    raise ValueError(
                        f"phase key '{key}' does not match phase name '{name}'"
                    )
                phases[key] = item
            return phases
        return v

    @classmethod
    def new(
        cls,
        phases: Iterable[Phase] = (),
        start_phase: StartPhase | None = None,
    ) -> "BuildPlan":
        """Create a plan from phases, adding each one in order."""
        plan = cls(start_phase=start_phase)
        for phase in phases:
            plan.add_phase(phase)
        return plan

    def add_phase(self, phase: Phase) -> None:
        """Add a phase, merging it into an existing phase of the same name."""
        existing = self.phases.get(phase.name)
        if existing is None:
            self.phases[phase.name] = phase
        else:
            self.phases[phase.name] = existing.merged_with(phase)

    def get_phase(self, name: str) -> Phase | None:
        return self.phases.get(name)

    def remove_phase(self, name: str) -> Phase | None:
        return self.phases.pop(name, None)

    def set_start_phase(self, start_phase: StartPhase) -> None:
        self.start_phase = start_phase

    def add_variables(self, variables: Mapping[str, str]) -> None:
        """Add environment variables; existing keys are overwritten."""
        if not variables:
            return
        self.variables = {**(self.variables or {}), **variables}

    def is_empty(self) -> bool:
        """Return True if the plan has no phases and no start phase."""
        return not self.phases and self.start_phase is None

    @property
    def start_cmd(self) -> str | None:
        return self.start_phase.cmd if self.start_phase else None

    def ordered_phases(self) -> list[Phase]:
        """Return phases in dependency order.

        Phases run after the phases they depend on. Among phases whose
        dependencies are satisfied, insertion order wins. Dependencies on
        phases that are not part of this plan are ignored.

        Returns:
            Phases in execution order.

        Raises:
            PlanGenerationError: If the dependencies contain a cycle.
        """
        remaining = dict(self.phases)
        done: set[str] = set()
        ordered: list[Phase] = []

        while remaining:
            ready = next(
                (
                    phase
                    for phase in remaining.values()
                    if all(
                        dep in done or dep not in self.phases
                        for dep in phase.depends_on or []
                    )
                ),
                None,
            )
            if ready is None:
                raise PlanGenerationError(
                    "Phase dependency cycle between: " + ", ".join(remaining)
                )
            ordered.append(ready)
            done.add(ready.name)
            del remaining[ready.name]

        return ordered

    def _absorb(self, other: "BuildPlan") -> None:
        """Layer ``other`` on top of this plan, copying everything taken."""
        for phase in other.phases.values():
            self.add_phase(phase.model_copy(deep=True))

        if other.start_phase is not None:
            self.start_phase = other.start_phase.model_copy(deep=True)

        if other.variables is not None:
            self.variables = {**(self.variables or {}), **other.variables}

        if other.providers is not None:
            self.providers = union_lists(self.providers, other.providers)

        if other.build_image is not None:
            self.build_image = other.build_image

    def merge(self, other: "BuildPlan") -> "BuildPlan":
        """Return a new plan with ``other`` layered on top of this one."""
        return BuildPlan.merge_plans([self, other])

    @classmethod
    def merge_plans(cls, plans: Iterable["BuildPlan"]) -> "BuildPlan":
        """Merge plans in increasing priority order.

        Args:
            plans: Plans to merge; later plans take priority.

        Returns:
            New merged BuildPlan. The inputs are left untouched.
        """
        merged = cls()
        for plan in plans:
            merged._absorb(plan)
        return merged


__all__ = ["BuildPlan", "validate_variables"]
