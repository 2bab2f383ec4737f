"""Build environment parsing.

The caller passes the build environment as ``KEY=VALUE`` strings. A bare
``KEY`` takes its value from the current process environment. Anything else
is rejected before any plan is generated.

Variables prefixed with ``PLANPACK_`` control plan generation (see
``planpack.plan.generator``) and are not baked into the image.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from planpack.errors import PlanParseError

CONFIG_PREFIX = "PLANPACK_"

ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_env_entry(entry: str) -> tuple[str, str]:
    """Parse one ``KEY=VALUE`` (or bare ``KEY``) entry.

    Args:
        entry: Environment entry as passed by the caller.

    Returns:
        Tuple of (name, value).

    Raises:
        PlanParseError: If the name is invalid, or a bare name is not set in
            the process environment.
    """
    name, sep, value = entry.partition("=")
    if not ENV_NAME_PATTERN.match(name):
        raise PlanParseError(f"Invalid environment variable '{entry}'")
    if not sep:
        if name not in os.environ:
            raise PlanParseError(
                f"Environment variable '{name}' has no value and is not set"
            )
        value = os.environ[name]
    return name, value


@dataclass
class Environment:
    """Parsed build environment."""

    variables: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_envs(cls, envs: Iterable[str] | None) -> Environment:
        """Parse a list of ``KEY=VALUE`` strings; later entries win."""
        variables: dict[str, str] = {}
        for entry in envs or []:
            name, value = parse_env_entry(entry)
            variables[name] = value
        return cls(variables=variables)

    def get(self, name: str) -> str | None:
        return self.variables.get(name)

    def get_config_variable(self, name: str) -> str | None:
        """Return a ``PLANPACK_`` control variable, treating blank as unset."""
        value = self.variables.get(f"{CONFIG_PREFIX}{name}")
        if value is None or not value.strip():
            return None
        return value

    def user_variables(self) -> dict[str, str]:
        """Return the variables meant for the image itself."""
        return {
            name: value
            for name, value in self.variables.items()
            if not name.startswith(CONFIG_PREFIX)
        }


__all__ = ["CONFIG_PREFIX", "Environment", "parse_env_entry"]
