from __future__ import annotations

import typer

from openmods.cli.commands._helpers import exit_on_error
from openmods.cli.context import build_context
from openmods.core.config import DEFAULT_RELAYS
from openmods.services.project_config import DEFAULT_GAME_ID, InitOptions, ProjectConfigService


def init(
    slug: str | None = typer.Option(None, "--slug", help="Project slug (gameId is added automatically)"),
    game_id: str = typer.Option(DEFAULT_GAME_ID, "--game-id", help="Game identifier for this project"),
    relay: list[str] | None = typer.Option(None, "--relay", help="Preferred relay URL (repeatable)"),
    artifacts_dir: str = typer.Option("artifacts", "--artifacts-dir", help="Where build artifacts are written"),
    torrents_dir: str = typer.Option(
        "artifacts/torrents", "--torrents-dir", help="Where torrent metadata is stored"
    ),
    author_pubkey: str | None = typer.Option(
        None, "--author-pubkey", help="Author npub that will sign project and release events"
    ),
    zap_lnurl: str | None = typer.Option(None, "--zap-lnurl", help="LNURL pay URL for zap support"),
) -> None:
    """Initialize an OpenMods project configuration in the current directory."""
    ctx = build_context(require_config=False)
    service = ProjectConfigService(root=ctx.root, console=ctx.console)
    exit_on_error(
        service.init(
            InitOptions(
                slug=slug,
                game_id=game_id,
                relays=tuple(relay) if relay else DEFAULT_RELAYS,
                artifacts_dir=artifacts_dir,
                torrents_dir=torrents_dir,
                author_pubkey=author_pubkey,
                zap_lnurl=zap_lnurl,
            )
        ),
        ctx,
    )
