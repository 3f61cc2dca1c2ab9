"""Release commands - scaffold, build, inspect, publish and verify release events (kind 30079)."""

from __future__ import annotations

from pathlib import Path

import typer

from openmods.cli.commands._helpers import exit_on_error
from openmods.cli.commands._publish import finish_publish
from openmods.cli.context import CLIContext, build_context
from openmods.core.files import write_json
from openmods.manifest.common import read_manifest
from openmods.manifest.release import parse_release_manifest
from openmods.output.console import Style
from openmods.services.inspect import print_release_summary
from openmods.services.prepare import PrepareService
from openmods.services.publisher import PublishOptions
from openmods.services.release_build import BuildRequest, build_release_manifest
from openmods.services.scaffold import ScaffoldService
from openmods.services.verify import verify_release

release_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release manifests and events.",
)


def _release_dir(ctx: CLIContext) -> Path:
    artifacts_dir = ctx.config.release.artifacts_dir if ctx.config is not None else "artifacts"
    return Path(artifacts_dir) / "release"


def _manifest_path(ctx: CLIContext, given: Path | None) -> Path:
    return ctx.resolve(given if given is not None else _release_dir(ctx) / "manifest.json")


def _event_path(ctx: CLIContext, given: Path | None) -> Path:
    return ctx.resolve(given if given is not None else _release_dir(ctx) / "event-30079.json")


@release_app.command("scaffold")
def scaffold(
    out: Path | None = typer.Option(None, "--out", help="Target manifest path"),
    version: str = typer.Option("0.1.0", "--version", help="Initial version to embed in the manifest"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing manifest"),
) -> None:
    """Create a starter release manifest and changelog stub."""
    ctx = build_context()
    service = ScaffoldService(config=ctx.require_config(), root=ctx.root, console=ctx.console)
    exit_on_error(service.release(_manifest_path(ctx, out), version=version, force=force), ctx)


@release_app.command("build")
def build(
    artifact: list[str] | None = typer.Option(
        None,
        "--artifact",
        help="Artifact path relative to the project root, or a magnet link (repeatable)",
    ),
    notes: Path = typer.Option(Path("artifacts/changelog.md"), "--notes", help="Release notes file"),
    version: str = typer.Option("0.0.1", "--version", help="Release version (semantic versioning)"),
    display_version: str | None = typer.Option(
        None, "--display-version", help="Display version (defaults to --version)"
    ),
    out: Path | None = typer.Option(None, "--out", help="Output manifest JSON path"),
) -> None:
    """Generate a release manifest with hashes for the supplied artifacts."""
    ctx = build_context()
    config = ctx.require_config()
    manifest = exit_on_error(
        build_release_manifest(
            BuildRequest(
                version=version,
                artifacts=artifact or [],
                notes=ctx.resolve(notes),
                display_version=display_version,
            ),
            config,
            ctx.root,
        ),
        ctx,
    )
    path = exit_on_error(write_json(_manifest_path(ctx, out), manifest.to_dict()), ctx)
    ctx.console.success(f"Release manifest written to {path}")
    if manifest.hashes:
        root_hash = manifest.hashes[0]
        ctx.console.print(f"root hash: {root_hash.algorithm}:{root_hash.value}", Style.DIM)


@release_app.command("inspect")
def inspect(
    file: Path | None = typer.Option(None, "--file", help="Path to release manifest"),
) -> None:
    """Preview key details from a release manifest."""
    ctx = build_context(require_config=False)
    manifest = exit_on_error(read_manifest(_manifest_path(ctx, file), parse_release_manifest), ctx)
    print_release_summary(manifest, ctx.console)


@release_app.command("publish")
def publish(
    manifest: Path | None = typer.Option(None, "--manifest", help="Path to manifest JSON"),
    out: Path | None = typer.Option(None, "--out", help="Where to write the prepared event"),
    secret: str | None = typer.Option(
        None,
        "--secret",
        envvar="OPENMODS_NSEC",
        help="nsec used to sign the event (default: $OPENMODS_NSEC)",
        show_envvar=False,
    ),
    push: bool = typer.Option(False, "--publish", help="Push to relays (default is a dry run)"),
    summary: bool = typer.Option(False, "--summary", help="Display manifest summary before writing the event"),
    relay: list[str] | None = typer.Option(None, "--relay", help="Override relay list (repeatable)"),
    timeout: float = typer.Option(7.0, "--timeout", help="Per-attempt timeout in seconds"),
    max_attempts: int = typer.Option(3, "--max-attempts", help="Attempts per relay"),
    backoff: float = typer.Option(0.5, "--backoff", help="Base backoff between attempts in seconds"),
) -> None:
    """Publish a release manifest to configured relays (dry-run by default)."""
    ctx = build_context()
    service = PrepareService(config=ctx.require_config(), console=ctx.console)
    prepared = exit_on_error(
        service.prepare_release(
            _manifest_path(ctx, manifest),
            _event_path(ctx, out),
            secret=secret,
            summary=summary,
        ),
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


@release_app.command("verify")
def verify(
    event: Path | None = typer.Option(None, "--event", help="Path to signed event JSON"),
    manifest: Path | None = typer.Option(None, "--manifest", help="Manifest JSON to compare with event content"),
    skip_manifest: bool = typer.Option(False, "--skip-manifest", help="Only check the signature"),
) -> None:
    """Validate a release event signature and its payload against the manifest."""
    ctx = build_context(require_config=False)
    result = exit_on_error(
        verify_release(
            _event_path(ctx, event),
            None if skip_manifest else _manifest_path(ctx, manifest),
        ),
        ctx,
    )
    ctx.console.success(f"Signature verified for event {result.event.id}")
    if result.manifest_matched:
        ctx.console.success("Event content matches manifest on disk")
