"""planpack - build plans and container images for arbitrary source trees.

This package detects how a source tree should be built, layers caller
overrides onto the detected plan, and builds a container image from the
result.
"""

__version__ = "0.1.0"

from planpack.api import build, detect, plan  # noqa: E402

__all__ = ["__version__", "build", "detect", "plan"]
