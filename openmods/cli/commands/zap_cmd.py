"""Zap commands - build NIP-57 zap requests and simulated receipts."""

from __future__ import annotations

from pathlib import Path

import typer

from openmods.cli.commands._helpers import exit_on_error
from openmods.cli.context import build_context
from openmods.net.http import RealHttpClient
from openmods.output.console import Style
from openmods.services.zap_simulate import ZapSimulateRequest, ZapSimulateService

zap_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Lightning zap tooling.",
)


@zap_app.command("simulate")
def simulate(
    release_event: Path = typer.Option(
        Path("artifacts/release/event-30079.json"),
        "--release-event",
        help="Release event JSON (kind 30079)",
    ),
    amount: int = typer.Option(100, "--amount", help="Zap amount in sats"),
    lnurl: str | None = typer.Option(None, "--lnurl", help="LNURL, lightning address or pay URL"),
    lnurl_metadata: Path | None = typer.Option(
        None, "--lnurl-metadata", help="Local LNURL metadata JSON (skips the network fetch)"
    ),
    message: str = typer.Option("", "--message", help="Optional zap comment"),
    relay: list[str] | None = typer.Option(None, "--relay", help="Relay hint for the receipt (repeatable)"),
    secret: str | None = typer.Option(
        None,
        "--secret",
        envvar="OPENMODS_NSEC",
        help="nsec of the zapper (default: $OPENMODS_NSEC)",
        show_envvar=False,
    ),
    pubkey: str | None = typer.Option(None, "--pubkey", help="Zapper npub when no secret is given"),
    receipt_secret: str | None = typer.Option(
        None,
        "--receipt-secret",
        envvar="OPENMODS_ZAP_RECEIVER_NSEC",
        help="nsec used to sign the simulated receipt (default: $OPENMODS_ZAP_RECEIVER_NSEC)",
        show_envvar=False,
    ),
    receiver: str | None = typer.Option(
        None, "--receiver", help="Receiver npub (defaults to author_pubkey in openmods.json)"
    ),
    receipt_out: Path | None = typer.Option(
        None, "--receipt-out", help="Write a simulated zap receipt (kind 9735) here"
    ),
    out: Path = typer.Option(
        Path("artifacts/zap/request-9734.json"), "--out", help="Where to write the zap request"
    ),
    invoke: bool = typer.Option(
        False, "--invoke-callback", help="Fetch an invoice from the LNURL callback"
    ),
    summary: bool = typer.Option(False, "--summary", help="Print a zap summary"),
) -> None:
    """Build a zap request (kind 9734) for a release and optionally a simulated receipt."""
    ctx = build_context(require_config=False)
    service = ZapSimulateService(config=ctx.config, http=RealHttpClient(), console=ctx.console)
    result = exit_on_error(
        service.run(
            ZapSimulateRequest(
                release_event=ctx.resolve(release_event),
                out=ctx.resolve(out),
                amount_sats=amount,
                lnurl=lnurl,
                lnurl_metadata=ctx.resolve(lnurl_metadata) if lnurl_metadata is not None else None,
                message=message,
                relays=tuple(relay or ()),
                secret=secret,
                pubkey=pubkey,
                receipt_secret=receipt_secret,
                receiver=receiver,
                receipt_out=ctx.resolve(receipt_out) if receipt_out is not None else None,
                invoke_callback=invoke,
                summary=summary,
            )
        ),
        ctx,
    )
    if result.invoice:
        ctx.console.print(f"invoice: {result.invoice}", Style.DIM)
