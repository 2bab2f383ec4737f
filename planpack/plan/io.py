"""Build plan serialization.

This module converts BuildPlans to and from JSON and YAML text and files.
Absent fields are omitted while empty collections are kept, so a plan read
back from its own output compares equal to the original.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from planpack.errors import PlanParseError
from planpack.plan.build_plan import BuildPlan
from planpack.types import PlanFormat

SUFFIX_FORMATS = {
    ".json": PlanFormat.JSON,
    ".yaml": PlanFormat.YAML,
    ".yml": PlanFormat.YAML,
}


def plan_to_dict(plan: BuildPlan) -> dict[str, Any]:
    """Convert a plan to a plain dictionary using serialized field names."""
    return plan.model_dump(by_alias=True, exclude_none=True)


def plan_from_dict(data: Any) -> BuildPlan:
    """Validate a dictionary as a plan.

    Args:
        data: Parsed document content.

    Returns:
        Validated BuildPlan.

    Raises:
        PlanParseError: If the data is not an object or fails validation.
    """
    if not isinstance(data, dict):
        raise PlanParseError(
            f"Expected a plan object, got {type(data).__name__}"
        )
    try:
        return BuildPlan.model_validate(data)
    except ValidationError as e:
        raise PlanParseError(f"Invalid build plan: {e}") from e


def plan_to_json_string(plan: BuildPlan) -> str:
    return json.dumps(plan_to_dict(plan), indent=2, ensure_ascii=False)


def plan_to_yaml_string(plan: BuildPlan) -> str:
    result: str = yaml.safe_dump(
        plan_to_dict(plan),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )
    return result


def plan_from_json_string(text: str) -> BuildPlan:
    """Parse a plan from JSON text.

    Raises:
        PlanParseError: If the text is not valid JSON or not a valid plan.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PlanParseError(f"Invalid JSON plan: {e}") from e
    return plan_from_dict(data)


def plan_from_yaml_string(text: str) -> BuildPlan:
    """Parse a plan from YAML text. An empty document is an empty plan.

    Raises:
        PlanParseError: If the text is not valid YAML or not a valid plan.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PlanParseError(f"Invalid YAML plan: {e}") from e
    if data is None:
        return BuildPlan()
    return plan_from_dict(data)


def plan_to_string(plan: BuildPlan, format: PlanFormat = PlanFormat.JSON) -> str:
    """Serialize a plan to text in the given format."""
    if PlanFormat(format) == PlanFormat.YAML:
        return plan_to_yaml_string(plan)
    return plan_to_json_string(plan)


def plan_from_string(text: str, format: PlanFormat = PlanFormat.JSON) -> BuildPlan:
    """Parse a plan from text in the given format."""
    if PlanFormat(format) == PlanFormat.YAML:
        return plan_from_yaml_string(text)
    return plan_from_json_string(text)


def format_for_path(path: Path) -> PlanFormat:
    """Return the plan format implied by a file extension.

    Raises:
        PlanParseError: If the extension is not .json, .yaml or .yml.
    """
    suffix = path.suffix.lower()
    if suffix not in SUFFIX_FORMATS:
        raise PlanParseError(
            f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json"
        )
    return SUFFIX_FORMATS[suffix]


def load_plan_file(path: Path) -> BuildPlan:
    """Load a plan from a file (YAML or JSON, by extension).

    Args:
        path: Path to the plan file.

    Returns:
        Validated BuildPlan.

    Raises:
        PlanParseError: If the file is missing, unreadable, has an unsupported
            extension, or does not contain a valid plan.
    """
    format = format_for_path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PlanParseError(f"Cannot read plan file {path}: {e}") from e
    return plan_from_string(text, format)


def export_plan_file(plan: BuildPlan, path: Path) -> None:
    """Write a plan to a file (YAML or JSON, by extension)."""
    text = plan_to_string(plan, format_for_path(path))
    path.write_text(text + ("" if text.endswith("\n") else "\n"), encoding="utf-8")


__all__ = [
    "export_plan_file",
    "format_for_path",
    "load_plan_file",
    "plan_from_dict",
    "plan_from_json_string",
    "plan_from_string",
    "plan_from_yaml_string",
    "plan_to_dict",
    "plan_to_json_string",
    "plan_to_string",
    "plan_to_yaml_string",
]
