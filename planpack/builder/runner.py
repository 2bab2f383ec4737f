"""Build runner for executing image builds.

This module handles:
- Composing `docker build` commands from build options
- Executing builds with subprocess
- Capturing stdout/stderr to log files
- Enforcing build timeouts
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from planpack.builder.cache_key import PLAN_DIGEST_LABEL
from planpack.errors import BUILD_TIMEOUT, EXECUTION_ERROR, BuildExecutionError

if TYPE_CHECKING:
    from planpack.builder.options import BuildOptions

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of an image build.

    Only returned for builds that succeeded or did not run; failures raise
    BuildExecutionError instead.

    Attributes:
        image_name: Name the image was (or would be) tagged with.
        dockerfile: Generated Dockerfile text.
        executed: Whether the image executor ran.
        exit_code: Executor exit code, if it ran.
        context_dir: Build context directory, if one was prepared.
        log_path: Path to the build log file, if the executor ran.
        started_at: Build start time.
        finished_at: Build finish time.
        command: The command that was executed.
    """

    image_name: str
    dockerfile: str
    executed: bool = False
    exit_code: int | None = None
    context_dir: Path | None = None
    log_path: Path | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    command: str | None = None


def compose_build_command(
    options: BuildOptions,
    image_name: str,
    context_dir: Path,
    dockerfile_path: Path,
    plan_digest: str | None = None,
    docker_binary: str = "docker",
) -> list[str]:
    """Compose the `docker build` command.

    ``no_cache`` takes precedence over every cache reuse option.

    Args:
        options: Build options.
        image_name: Primary image name.
        context_dir: Build context directory.
        dockerfile_path: Path to the generated Dockerfile.
        plan_digest: Optional plan digest attached as a label.
        docker_binary: Executable to run.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [docker_binary, "build", str(context_dir), "-f", str(dockerfile_path)]

    cmd.extend(["-t", image_name])
    for tag in options.tags:
        cmd.extend(["-t", tag])

    for label in options.labels:
        cmd.extend(["--label", label])
    if plan_digest:
        cmd.extend(["--label", f"{PLAN_DIGEST_LABEL}={plan_digest}"])

    if options.platform:
        cmd.extend(["--platform", ",".join(options.platform)])

    if options.no_cache:
        cmd.append("--no-cache")
    else:
        if options.cache_from:
            cmd.extend(["--cache-from", options.cache_from])
        if options.incremental_cache_image:
            cmd.extend(["--cache-from", options.incremental_cache_image])
        if options.inline_cache:
            cmd.extend(["--build-arg", "BUILDKIT_INLINE_CACHE=1"])

    if options.cpu_quota:
        cmd.extend(["--cpu-quota", options.cpu_quota])
    if options.memory:
        cmd.extend(["--memory", options.memory])

    if options.effective_quiet:
        cmd.append("--quiet")
    elif options.verbose:
        cmd.append("--progress=plain")

    return cmd


def compose_build_env(options: BuildOptions) -> dict[str, str]:
    """Compose environment overrides for the build process."""
    env = {"DOCKER_BUILDKIT": "1"}
    if options.docker_host:
        env["DOCKER_HOST"] = options.docker_host
    if options.docker_tls_verify:
        env["DOCKER_TLS_VERIFY"] = options.docker_tls_verify
    return env


def run_docker_build(
    cmd: list[str],
    cwd: Path,
    log_path: Path,
    timeout: int | None = None,
    env_override: dict[str, str] | None = None,
) -> tuple[int, datetime, datetime]:
    """Execute a build command, capturing its output to a log file.

    Args:
        cmd: Command to run.
        cwd: Working directory.
        log_path: Log file to write.
        timeout: Build timeout in seconds (None = no timeout).
        env_override: Optional environment variable overrides.

    Returns:
        Tuple of (exit_code, started_at, finished_at).

    Raises:
        BuildExecutionError: If the build times out or fails to start.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)

    cmd_str = shlex.join(cmd)
    logger.info("Executing build: %s", cmd_str)
    logger.debug("Working directory: %s", cwd)

    started_at = datetime.now(timezone.utc)

    try:
        with log_path.open("w") as log_file:
            log_file.write(f"# Command: {cmd_str}\n")
            log_file.write(f"# Started: {started_at.isoformat()}\n")
            log_file.write(f"# CWD: {cwd}\n")
            log_file.write("# " + "=" * 70 + "\n\n")
            log_file.flush()

            env: dict[str, str] | None = None
            if env_override:
                env = dict(os.environ)
                env.update(env_override)

            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                env=env,
                check=False,
            )
            exit_code = result.returncode

    except subprocess.TimeoutExpired as e:
        error_message = f"Build timed out after {timeout} seconds"
        logger.error("%s. See log: %s", error_message, log_path)

        with log_path.open("a") as log_file:
            log_file.write(f"\n# TIMEOUT after {timeout} seconds\n")

        raise BuildExecutionError(
            error_message,
            exit_code=-1,
            code=BUILD_TIMEOUT,
            log_path=log_path,
        ) from e

    except OSError as e:
        error_message = f"Failed to execute build: {e}"
        logger.error(error_message)
        raise BuildExecutionError(
            error_message,
            exit_code=None,
            code=EXECUTION_ERROR,
            log_path=log_path,
        ) from e

    finished_at = datetime.now(timezone.utc)

    with log_path.open("a") as log_file:
        log_file.write(f"\n# Finished: {finished_at.isoformat()}\n")
        log_file.write(f"# Exit code: {exit_code}\n")
        duration = (finished_at - started_at).total_seconds()
        log_file.write(f"# Duration: {duration:.1f}s\n")

    return exit_code, started_at, finished_at


__all__ = [
    "BuildResult",
    "compose_build_command",
    "compose_build_env",
    "run_docker_build",
]
