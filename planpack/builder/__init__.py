"""Image builder module.

This module handles:
- Build options
- Dockerfile generation
- Plan digests and cache ids
- Running image builds
"""

from planpack.builder.options import BuildOptions

__all__ = ["BuildOptions"]
