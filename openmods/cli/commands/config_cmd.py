"""Config commands - update openmods.json in place."""

from __future__ import annotations

import typer

from openmods.cli.commands._helpers import exit_on_error
from openmods.cli.context import build_context
from openmods.core.config import DEFAULT_CAPABILITIES
from openmods.services.project_config import ProjectConfigService

config_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Manage openmods.json.",
)


@config_app.command("rotate-author-key")
def rotate_author_key(
    npub: str = typer.Argument(..., help="Bech32 encoded author public key"),
) -> None:
    """Update the author npub in openmods.json."""
    ctx = build_context(require_config=False)
    service = ProjectConfigService(root=ctx.root, console=ctx.console)
    exit_on_error(service.rotate_author_key(npub), ctx)


@config_app.command("set-signer")
def set_signer(
    mode: str = typer.Option("local", "--mode", help="Signer mode: local or delegated"),
    relay: str | None = typer.Option(None, "--relay", help="Delegated signer relay URL"),
    remote_pubkey: str | None = typer.Option(None, "--remote-pubkey", help="Delegated signer npub"),
    capability: list[str] | None = typer.Option(
        None,
        "--capability",
        help="Delegated signer capability: kind30078, kind30079 or zap (repeatable)",
    ),
) -> None:
    """Configure signing mode (local or delegated)."""
    ctx = build_context(require_config=False)
    service = ProjectConfigService(root=ctx.root, console=ctx.console)
    exit_on_error(
        service.set_signer(
            mode,
            relay=relay,
            remote_pubkey=remote_pubkey,
            capabilities=tuple(capability) if capability else DEFAULT_CAPABILITIES,
        ),
        ctx,
    )
