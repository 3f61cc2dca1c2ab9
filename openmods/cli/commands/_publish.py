"""Dry-run or relay push of a prepared event, shared by project and release publish."""

from __future__ import annotations

from openmods.cli.commands._helpers import exit_on_error, exit_with_code
from openmods.cli.context import CLIContext
from openmods.core.errors import ErrorCode
from openmods.net.relay import WebsocketRelayPool
from openmods.services.prepare import PreparedEvent, PrepareService
from openmods.services.publisher import PublishOptions


def finish_publish(
    ctx: CLIContext,
    service: PrepareService,
    prepared: PreparedEvent,
    *,
    push: bool,
    relays: list[str] | None,
    options: PublishOptions,
) -> None:
    if not push:
        ctx.console.success(f"Prepared {prepared.label} event (dry-run only).")
        return

    report = exit_on_error(
        service.run_publish(
            prepared,
            relays=relays,
            options=options,
            transport_factory=WebsocketRelayPool,
        ),
        ctx,
    )
    if report is not None and report.all_failed:
        ctx.console.error(f"No relay accepted the {prepared.label} event")
        exit_with_code(int(ErrorCode.NETWORK_ERROR))
