"""Docker image builder.

This module provides the Image Builder:
- Start command policy (``no_error_without_start``)
- Dockerfile rendering, or rendering only with ``print_dockerfile``
- Build context preparation scoped to the build (``build_context``)
- Running `docker build` and surfacing failures as BuildExecutionError

The `docker build` subprocess is the only blocking call in planpack. It runs
inside ``build_context`` so temporary contexts are removed on every exit
path, including failures.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from planpack.builder.cache_key import cache_id, compute_plan_digest, sanitize_cache_id
from planpack.builder.dockerfile import generate_dockerfile
from planpack.builder.options import BuildOptions
from planpack.builder.runner import (
    BuildResult,
    compose_build_command,
    compose_build_env,
    run_docker_build,
)
from planpack.config import Settings, get_settings
from planpack.errors import (
    BUILD_FAILED,
    EXECUTION_ERROR,
    NO_START_COMMAND,
    BuildExecutionError,
)
from planpack.plan.build_plan import BuildPlan
from planpack.plan.io import plan_to_json_string

logger = logging.getLogger(__name__)


def copy_source(app_src: Path, dest: Path, settings: Settings) -> None:
    """Copy the source tree into a build context directory.

    Generated asset directories and the destination itself (when it lives
    inside the source tree) are skipped.

    Raises:
        BuildExecutionError: If copying fails.
    """
    dest_resolved = dest.resolve()

    def _ignore(directory: str, names: list[str]) -> set[str]:
        ignored = {n for n in names if n == settings.plan_dir_name}
        for name in names:
            if (Path(directory) / name).resolve() == dest_resolved:
                ignored.add(name)
        return ignored

    try:
        shutil.copytree(
            app_src, dest, symlinks=True, ignore=_ignore, dirs_exist_ok=True
        )
    except OSError as e:
        raise BuildExecutionError(
            f"Failed to prepare build context: {e}",
            code=EXECUTION_ERROR,
        ) from e


@contextmanager
def build_context(
    app_src: Path,
    options: BuildOptions,
    settings: Settings,
) -> Iterator[Path]:
    """Provide the directory the image is built from.

    - ``out_dir``: the source is copied there and the directory is kept
    - ``current_dir``: the source directory itself
    - otherwise: a temporary copy, removed when the context exits

    Args:
        app_src: Resolved application source directory.
        options: Build options.
        settings: Settings providing the temporary directory root.

    Yields:
        Build context directory.
    """
    if options.out_dir:
        out_dir = Path(options.out_dir).expanduser()
        if not out_dir.is_absolute():
            out_dir = Path.cwd() / out_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        if out_dir.resolve() != app_src:
            copy_source(app_src, out_dir, settings)
        yield out_dir
        return

    if options.current_dir:
        yield app_src
        return

    if settings.tmp_dir is not None:
        settings.tmp_dir.mkdir(parents=True, exist_ok=True)
    tmp_dir = Path(tempfile.mkdtemp(prefix="planpack_", dir=settings.tmp_dir))
    logger.debug("Created temporary build context %s", tmp_dir)
    try:
        copy_source(app_src, tmp_dir, settings)
        yield tmp_dir
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        logger.debug("Removed temporary build context %s", tmp_dir)


def write_plan_assets(
    context_dir: Path,
    plan: BuildPlan,
    dockerfile: str,
    settings: Settings,
) -> Path:
    """Write the Dockerfile and plan into the context's asset directory.

    Returns:
        Path to the written Dockerfile.
    """
    assets_dir = context_dir / settings.plan_dir_name
    assets_dir.mkdir(parents=True, exist_ok=True)
    dockerfile_path = assets_dir / "Dockerfile"
    dockerfile_path.write_text(dockerfile, encoding="utf-8")
    (assets_dir / "plan.json").write_text(
        plan_to_json_string(plan) + "\n", encoding="utf-8"
    )
    return dockerfile_path


class DockerImageBuilder:
    """Builds container images from finalized plans."""

    def __init__(
        self,
        options: BuildOptions,
        settings: Settings | None = None,
    ) -> None:
        self.options = options
        self.settings = settings if settings is not None else get_settings()

    def check_start(self, plan: BuildPlan) -> None:
        """Enforce the start command policy.

        Raises:
            BuildExecutionError: If the plan has no start command and
                ``no_error_without_start`` is not set.
        """
        if plan.start_cmd is not None:
            return
        if not self.options.no_error_without_start:
            raise BuildExecutionError(
                "No start command could be found",
                code=NO_START_COMMAND,
            )
        logger.warning("No start command found; the image will not be runnable")

    def create_image(self, app_src: str | Path, plan: BuildPlan) -> BuildResult:
        """Build an image for an application from its plan.

        Args:
            app_src: Application source directory.
            plan: Final BuildPlan.

        Returns:
            BuildResult. Nothing is executed with ``print_dockerfile`` or
            ``out_dir``.

        Raises:
            BuildExecutionError: If there is no start command (unless
                tolerated), the context cannot be prepared, or the build
                fails.
            PlanGenerationError: If the plan's phase dependencies form a cycle.
        """
        options = self.options
        settings = self.settings
        app_path = Path(app_src).expanduser().resolve()

        self.check_start(plan)

        image_name = options.name or f"planpack-{uuid.uuid4().hex[:12]}"
        dockerfile = generate_dockerfile(
            plan, options, settings, cache_id(options, app_path)
        )

        if options.print_dockerfile:
            return BuildResult(image_name=image_name, dockerfile=dockerfile)

        plan_digest = compute_plan_digest(plan)

        with build_context(app_path, options, settings) as context_dir:
            dockerfile_path = write_plan_assets(context_dir, plan, dockerfile, settings)
            kept_context = context_dir if options.out_dir or options.current_dir else None

            if options.out_dir:
                logger.info("Wrote build context for %s to %s", image_name, context_dir)
                return BuildResult(
                    image_name=image_name,
                    dockerfile=dockerfile,
                    context_dir=kept_context,
                )

            cmd = compose_build_command(
                options,
                image_name,
                context_dir,
                dockerfile_path,
                plan_digest=plan_digest,
                docker_binary=settings.docker_binary,
            )
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
            log_path = settings.log_dir / f"{sanitize_cache_id(image_name)}-{stamp}.log"

            if options.effective_quiet:
                logger.debug("Building image %s", image_name)
            else:
                logger.info("Building image %s (log: %s)", image_name, log_path)

            exit_code, started_at, finished_at = run_docker_build(
                cmd,
                cwd=context_dir,
                log_path=log_path,
                timeout=settings.build_timeout,
                env_override=compose_build_env(options),
            )

        if exit_code != 0:
            error_message = f"Build failed with exit code {exit_code}"
            logger.error("%s. See log: %s", error_message, log_path)
            raise BuildExecutionError(
                error_message,
                exit_code=exit_code,
                code=BUILD_FAILED,
                log_path=log_path,
            )

        logger.info("Built image %s", image_name)
        return BuildResult(
            image_name=image_name,
            dockerfile=dockerfile,
            executed=True,
            exit_code=exit_code,
            context_dir=kept_context,
            log_path=log_path,
            started_at=started_at,
            finished_at=finished_at,
            command=shlex.join(cmd),
        )


__all__ = [
    "DockerImageBuilder",
    "build_context",
    "copy_source",
    "write_plan_assets",
]
