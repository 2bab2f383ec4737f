"""Thin CLI wrapper for planpack.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from planpack import __version__
from planpack.config import get_settings, print_settings_json

app = typer.Typer(
    name="planpack",
    help="planpack - generate build plans and container images from source",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"planpack version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """planpack - generate build plans and container images from source."""
    configure_logging(get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        print(print_settings_json(settings))
    else:
        tmp_dir_display = (
            str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
        )
        timeout_display = (
            str(settings.build_timeout) if settings.build_timeout else "(none)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Image executor:[/bold]")
        console.print(f"  Base image:          {settings.base_image}")
        console.print(f"  Docker binary:       {settings.docker_binary}")
        console.print(f"  Build timeout:       {timeout_display}")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Plan directory:      {settings.plan_dir_name}")
        console.print(f"  Log directory:       {settings.log_dir}")
        console.print(f"  Temp directory:      {tmp_dir_display}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def detect(
    path: Annotated[str, typer.Argument(help="App source directory")],
    env: Annotated[
        list[str] | None,
        typer.Option("--env", "-e", help="Build environment KEY=VALUE (repeatable)"),
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="Plan config file"),
    ] = None,
) -> None:
    """Show the providers that apply to a source tree."""
    from planpack.api import detect as detect_providers
    from planpack.errors import PlanpackError

    try:
        providers = detect_providers(path, env=env, config_file=config_file)
    except PlanpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    if providers:
        console.print(providers)
    else:
        console.print("[yellow]No providers detected[/yellow]")


@app.command()
def plan(
    path: Annotated[str, typer.Argument(help="App source directory")],
    env: Annotated[
        list[str] | None,
        typer.Option("--env", "-e", help="Build environment KEY=VALUE (repeatable)"),
    ] = None,
    json_plan: Annotated[
        str | None,
        typer.Option("--json-plan", help="JSON plan file to layer over detection"),
    ] = None,
    install_cmds: Annotated[
        list[str] | None,
        typer.Option("--install-cmd", "-i", help="Install command (repeatable)"),
    ] = None,
    build_cmds: Annotated[
        list[str] | None,
        typer.Option("--build-cmd", "-b", help="Build command (repeatable)"),
    ] = None,
    start_cmd: Annotated[
        str | None,
        typer.Option("--start-cmd", "-s", help="Start command"),
    ] = None,
    apt_pkgs: Annotated[
        list[str] | None,
        typer.Option("--apt", help="Apt package (repeatable)"),
    ] = None,
    nix_pkgs: Annotated[
        list[str] | None,
        typer.Option("--pkgs", "-p", help="System package (repeatable)"),
    ] = None,
    nix_libs: Annotated[
        list[str] | None,
        typer.Option("--libs", help="Library package (repeatable)"),
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="Plan config file"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: json or yaml"),
    ] = "json",
) -> None:
    """Generate and print the build plan for a source tree."""
    from planpack.api import plan as generate_plan
    from planpack.errors import PlanpackError
    from planpack.types import PlanFormat

    try:
        plan_format = PlanFormat(format)
    except ValueError:
        console.print(f"[red]Invalid format: {format}[/red]")
        console.print("Valid values: json, yaml")
        raise typer.Exit(code=1) from None

    json_text: str | None = None
    if json_plan is not None:
        try:
            json_text = Path(json_plan).read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Cannot read plan file: {e}[/red]")
            raise typer.Exit(code=1) from None

    try:
        output = generate_plan(
            path,
            env=env,
            json_plan=json_text,
            install_cmds=install_cmds,
            build_cmds=build_cmds,
            start_cmd=start_cmd,
            apt_pkgs=apt_pkgs,
            nix_pkgs=nix_pkgs,
            nix_libs=nix_libs,
            config_file=config_file,
            format=plan_format,
        )
    except PlanpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    # Plain print keeps machine-readable output free of markup
    print(output)


@app.command()
def build(
    path: Annotated[str, typer.Argument(help="App source directory")],
    name: Annotated[str, typer.Option("--name", "-n", help="Image name")],
    out_dir: Annotated[
        str | None,
        typer.Option("--out", "-o", help="Write the build context here, do not build"),
    ] = None,
    print_dockerfile: Annotated[
        bool,
        typer.Option("--print-dockerfile", help="Print the Dockerfile only"),
    ] = False,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Additional image tag (repeatable)"),
    ] = None,
    labels: Annotated[
        list[str] | None,
        typer.Option("--label", "-l", help="Image label key=value (repeatable)"),
    ] = None,
    quiet: Annotated[
        bool | None,
        typer.Option("--quiet/--no-quiet", "-q", help="Suppress build output"),
    ] = None,
    cache_key: Annotated[
        str | None,
        typer.Option("--cache-key", help="Key build cache mounts by this id"),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Disable build caching"),
    ] = False,
    inline_cache: Annotated[
        bool,
        typer.Option("--inline-cache/--no-inline-cache", help="Inline cache metadata"),
    ] = True,
    cache_from: Annotated[
        str | None,
        typer.Option("--cache-from", help="Image to reuse cached layers from"),
    ] = None,
    platform: Annotated[
        list[str] | None,
        typer.Option("--platform", help="Target platform (repeatable)"),
    ] = None,
    current_dir: Annotated[
        bool,
        typer.Option("--current-dir/--copy-source", help="Build in place"),
    ] = True,
    no_error_without_start: Annotated[
        bool,
        typer.Option("--no-error-without-start", help="Allow a missing start command"),
    ] = False,
    incremental_cache_image: Annotated[
        str | None,
        typer.Option("--incremental-cache-image", help="Image seeding incremental builds"),
    ] = None,
    cpu_quota: Annotated[
        str | None,
        typer.Option("--cpu-quota", help="CPU quota for build containers"),
    ] = None,
    memory: Annotated[
        str | None,
        typer.Option("--memory", help="Memory limit for build containers"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose build output"),
    ] = False,
    docker_host: Annotated[
        str | None,
        typer.Option("--docker-host", help="Docker daemon endpoint"),
    ] = None,
    docker_tls_verify: Annotated[
        str | None,
        typer.Option("--docker-tls-verify", help="Docker TLS verification"),
    ] = None,
    env: Annotated[
        list[str] | None,
        typer.Option("--env", "-e", help="Build environment KEY=VALUE (repeatable)"),
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="Plan config file"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output result as JSON"),
    ] = False,
) -> None:
    """Build a container image from a source tree."""
    from pydantic import ValidationError

    from planpack.api import build as build_image
    from planpack.builder.options import BuildOptions
    from planpack.errors import BuildExecutionError, PlanpackError

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        options = BuildOptions(
            name=name,
            out_dir=out_dir,
            print_dockerfile=print_dockerfile,
            tags=tags or [],
            labels=labels or [],
            quiet=quiet,
            cache_key=cache_key,
            no_cache=no_cache,
            inline_cache=inline_cache,
            cache_from=cache_from,
            platform=platform or [],
            current_dir=current_dir,
            no_error_without_start=no_error_without_start,
            incremental_cache_image=incremental_cache_image,
            cpu_quota=cpu_quota,
            memory=memory,
            verbose=verbose,
            docker_host=docker_host,
            docker_tls_verify=docker_tls_verify,
        )
    except ValidationError as e:
        console.print("[red]Invalid build options:[/red]")
        console.print(str(e))
        raise typer.Exit(code=1) from None

    try:
        result = build_image(path, name, options, env=env, config_file=config_file)
    except BuildExecutionError as e:
        console.print(f"[red]Build failed: {e}[/red]")
        if e.log_path is not None:
            console.print(f"  Log: {e.log_path}")
        raise typer.Exit(code=1) from None
    except PlanpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    if result is None:
        raise typer.Exit(code=1)

    if print_dockerfile:
        print(result.dockerfile, end="")
        return

    if json_output:
        output = {
            "image_name": result.image_name,
            "executed": result.executed,
            "exit_code": result.exit_code,
            "context_dir": str(result.context_dir) if result.context_dir else None,
            "log_path": str(result.log_path) if result.log_path else None,
            "command": result.command,
        }
        print(json.dumps(output, indent=2))
    elif result.executed:
        console.print(f"[green]✓ Built image {result.image_name}[/green]")
        if result.log_path is not None:
            console.print(f"  Log: {result.log_path}")
    else:
        console.print(
            f"[green]✓ Wrote build context for {result.image_name} "
            f"to {result.context_dir}[/green]"
        )
