"""Read-only view of the application source tree handed to providers."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from planpack.errors import DetectionError


class App:
    """Source tree being planned.

    All paths passed to the helpers are relative to the app root.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize App.

        Args:
            path: Application source directory.

        Raises:
            DetectionError: If the path does not exist or is not a directory.
        """
        source = Path(path).expanduser()
        if not source.exists():
            raise DetectionError(f"Source path not found: {source}")
        if not source.is_dir():
            raise DetectionError(f"Source path is not a directory: {source}")
        self.source = source.resolve()

    @property
    def name(self) -> str:
        return self.source.name

    def includes_file(self, name: str) -> bool:
        return (self.source / name).is_file()

    def includes_directory(self, name: str) -> bool:
        return (self.source / name).is_dir()

    def has_match(self, pattern: str) -> bool:
        """Return True if any file matches the glob pattern."""
        return any(self.source.glob(pattern))

    def read_file(self, name: str) -> str:
        """Read a text file from the app.

        Raises:
            DetectionError: If the file cannot be read.
        """
        try:
            return (self.source / name).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DetectionError(f"Cannot read {name}: {e}") from e

    def read_json(self, name: str) -> Any:
        """Read and parse a JSON file from the app.

        Raises:
            DetectionError: If the file cannot be read or parsed.
        """
        try:
            return json.loads(self.read_file(name))
        except json.JSONDecodeError as e:
            raise DetectionError(f"Invalid JSON in {name}: {e}") from e

    def read_toml(self, name: str) -> dict[str, Any]:
        """Read and parse a TOML file from the app.

        Raises:
            DetectionError: If the file cannot be read or parsed.
        """
        try:
            return tomllib.loads(self.read_file(name))
        except tomllib.TOMLDecodeError as e:
            raise DetectionError(f"Invalid TOML in {name}: {e}") from e


__all__ = ["App"]
