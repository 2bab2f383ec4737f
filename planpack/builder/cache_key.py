"""Cache identifiers for image builds.

This module handles:
- Canonical plan snapshots and their deterministic digest
- The identifier build cache mounts are keyed by

The digest is attached to images as a label so two images built from the
same plan can be recognized.
"""

from __future__ import annotations

import hashlib
import json
import re
from pathlib import Path
from typing import Any

from planpack.builder.options import BuildOptions
from planpack.plan.build_plan import BuildPlan
from planpack.plan.io import plan_to_dict

# Schema version for the digest format; bump when the snapshot format changes
PLAN_DIGEST_SCHEMA_VERSION = "1"

PLAN_DIGEST_LABEL = "planpack.plan-digest"


def normalize_plan_snapshot(plan: BuildPlan) -> dict[str, Any]:
    """Create the canonical snapshot of a plan for hashing.

    Phase order is recorded explicitly because canonical JSON sorts keys.

    Args:
        plan: BuildPlan instance.

    Returns:
        Dictionary with the plan data and its phase order.
    """
    return {
        "schema_version": PLAN_DIGEST_SCHEMA_VERSION,
        "phase_order": list(plan.phases),
        "plan": plan_to_dict(plan),
    }


def compute_plan_digest(plan: BuildPlan) -> str:
    """Compute a digest over the canonical JSON form of a plan.

    Args:
        plan: BuildPlan instance.

    Returns:
        Digest as hex string (sha256:...).
    """
    canonical_json = json.dumps(
        normalize_plan_snapshot(plan),
        sort_keys=True,
        separators=(",", ":"),
    )
    hash_bytes = hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
    return f"sha256:{hash_bytes}"


def sanitize_cache_id(value: str) -> str:
    """Reduce a string to characters safe in a cache mount id."""
    cleaned = re.sub(r"[^A-Za-z0-9_.-]+", "-", value).strip("-")
    return cleaned[:64] or "planpack"


def cache_id(options: BuildOptions, app_src: Path) -> str:
    """Return the identifier build cache mounts are keyed by.

    Uses the ``cache_key`` option when given, otherwise the name of the app
    directory.
    """
    return sanitize_cache_id(options.cache_key or app_src.name)


__all__ = [
    "PLAN_DIGEST_LABEL",
    "PLAN_DIGEST_SCHEMA_VERSION",
    "cache_id",
    "compute_plan_digest",
    "normalize_plan_snapshot",
    "sanitize_cache_id",
]
