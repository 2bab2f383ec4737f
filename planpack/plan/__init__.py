"""Build plan module.

This module handles:
- Phase and start phase models
- Build plans and their merge semantics
- Plan serialization
- Plan generation from providers, config files and overrides
"""

from planpack.plan.build_plan import BuildPlan
from planpack.plan.phase import Phase, StartPhase

__all__ = ["BuildPlan", "Phase", "StartPhase"]

# Generator and IO helpers are imported from their submodules:
# planpack.plan.generator, planpack.plan.io
