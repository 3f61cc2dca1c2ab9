"""Project commands - scaffold, inspect and publish the project definition (kind 30078)."""

from __future__ import annotations

from pathlib import Path

import typer

from openmods.cli.commands._helpers import exit_on_error
from openmods.cli.commands._publish import finish_publish
from openmods.cli.context import build_context
from openmods.manifest.common import read_manifest
from openmods.manifest.project import parse_project_manifest
from openmods.services.inspect import print_project_summary
from openmods.services.prepare import PrepareService
from openmods.services.publisher import PublishOptions
from openmods.services.scaffold import ScaffoldService

project_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Project definition events.",
)

DEFAULT_PROJECT_MANIFEST = Path("project/project.json")
DEFAULT_PROJECT_EVENT = Path("project/event-30078.json")


@project_app.command("scaffold")
def scaffold(
    out: Path = typer.Option(DEFAULT_PROJECT_MANIFEST, "--out", help="Target manifest JSON path"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing manifest"),
) -> None:
    """Create a project manifest skeleton populated from openmods.json."""
    ctx = build_context()
    service = ScaffoldService(config=ctx.require_config(), root=ctx.root, console=ctx.console)
    exit_on_error(service.project(ctx.resolve(out), force=force), ctx)


@project_app.command("inspect")
def inspect(
    file: Path = typer.Option(DEFAULT_PROJECT_MANIFEST, "--file", help="Path to project manifest"),
) -> None:
    """Preview key details from a project manifest."""
    ctx = build_context(require_config=False)
    manifest = exit_on_error(read_manifest(ctx.resolve(file), parse_project_manifest), ctx)
    print_project_summary(manifest, ctx.console)


@project_app.command("publish")
def publish(
    manifest: Path = typer.Option(DEFAULT_PROJECT_MANIFEST, "--manifest", help="Path to project manifest JSON"),
    out: Path = typer.Option(DEFAULT_PROJECT_EVENT, "--out", help="Where to write the prepared event"),
    secret: str | None = typer.Option(
        None,
        "--secret",
        envvar="OPENMODS_NSEC",
        help="nsec used to sign the event (default: $OPENMODS_NSEC)",
        show_envvar=False,
    ),
    push: bool = typer.Option(False, "--publish", help="Push to relays (default is a dry run)"),
    summary: bool = typer.Option(False, "--summary", help="Display a summary before writing the event"),
    relay: list[str] | None = typer.Option(None, "--relay", help="Override relay list (repeatable)"),
    timeout: float = typer.Option(7.0, "--timeout", help="Per-attempt timeout in seconds"),
    max_attempts: int = typer.Option(3, "--max-attempts", help="Attempts per relay"),
    backoff: float = typer.Option(0.5, "--backoff", help="Base backoff between attempts in seconds"),
) -> None:
    """Publish the project definition to configured relays (dry-run by default)."""
    ctx = build_context()
    service = PrepareService(config=ctx.require_config(), console=ctx.console)
    prepared = exit_on_error(
        service.prepare_project(ctx.resolve(manifest), ctx.resolve(out), secret=secret, summary=summary),
        ctx,
    )
    finish_publish(
        ctx,
        service,
        prepared,
        push=push,
        relays=relay,
        options=PublishOptions(timeout=timeout, max_attempts=max_attempts, backoff=backoff),
    )
