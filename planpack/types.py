"""Shared type definitions for planpack.

This module contains enums shared across subpackages to avoid circular
imports.
"""

from enum import Enum


class PhaseKind(str, Enum):
    """Implicit role of a build phase."""

    SETUP = "setup"
    INSTALL = "install"
    BUILD = "build"
    CUSTOM = "custom"

    @classmethod
    def from_name(cls, name: str) -> "PhaseKind":
        """Return the kind implied by a phase name."""
        if name in (cls.SETUP.value, cls.INSTALL.value, cls.BUILD.value):
            return cls(name)
        return cls.CUSTOM


class PlanFormat(str, Enum):
    """Text formats a build plan can be serialized to."""

    JSON = "json"
    YAML = "yaml"


__all__ = ["PhaseKind", "PlanFormat"]
