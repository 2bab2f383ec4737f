"""Error taxonomy for planpack.

Every error carries a stable ``code`` for programmatic handling. Each class
also derives from the builtin exception family callers already expect
(``OSError`` for detection, ``ValueError`` for plan problems,
``RuntimeError`` for build execution), so the message reaches the caller
unchanged through a plain ``except`` clause.
"""

from __future__ import annotations

from pathlib import Path

# Error code constants
DETECTION_ERROR = "detection_error"
PLAN_PARSE_ERROR = "plan_parse_error"
PLAN_GENERATION_ERROR = "plan_generation_error"
BUILD_FAILED = "build_failed"
BUILD_TIMEOUT = "build_timeout"
EXECUTION_ERROR = "execution_error"
NO_START_COMMAND = "no_start_command"


class PlanpackError(Exception):
    """Base error for all planpack operations."""

    def __init__(self, message: str, code: str = "planpack_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class DetectionError(PlanpackError, OSError):
    """Raised when provider detection fails (unreadable path, provider crash)."""

    def __init__(self, message: str, code: str = DETECTION_ERROR) -> None:
        super().__init__(message, code=code)


class PlanParseError(PlanpackError, ValueError):
    """Raised when a serialized plan or environment entry cannot be parsed."""

    def __init__(self, message: str, code: str = PLAN_PARSE_ERROR) -> None:
        super().__init__(message, code=code)


class PlanGenerationError(PlanpackError, ValueError):
    """Raised when a well-formed set of plans cannot be finalized."""

    def __init__(self, message: str, code: str = PLAN_GENERATION_ERROR) -> None:
        super().__init__(message, code=code)


class BuildExecutionError(PlanpackError, RuntimeError):
    """Raised when the image build cannot be carried out.

    Attributes:
        exit_code: Exit code of the image executor, if it ran.
        log_path: Path to the captured build log, if one was written.
    """

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = BUILD_FAILED,
        log_path: Path | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.log_path = log_path


__all__ = [
    "BUILD_FAILED",
    "BUILD_TIMEOUT",
    "DETECTION_ERROR",
    "EXECUTION_ERROR",
    "NO_START_COMMAND",
    "PLAN_GENERATION_ERROR",
    "PLAN_PARSE_ERROR",
    "BuildExecutionError",
    "DetectionError",
    "PlanGenerationError",
    "PlanParseError",
    "PlanpackError",
]
