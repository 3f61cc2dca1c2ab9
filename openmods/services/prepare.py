"""Prepare project and release events, and optionally push them to relays.

Preparation always writes the event file, signed or not. Publishing is a
separate step that needs a signed event and at least one relay.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from openmods.core.config import OpenModsConfig
from openmods.core.files import FileError, write_json
from openmods.core.result import Err, Ok, Result
from openmods.manifest.common import ManifestError, read_manifest
from openmods.manifest.project import parse_project_manifest
from openmods.manifest.release import parse_release_manifest
from openmods.net.cancel import CancellationContext
from openmods.net.relay import RelayTransport, WebsocketRelayPool
from openmods.nostr.errors import InvalidEncoding, MissingIdentity, SignatureRequired, ValidationMismatch
from openmods.nostr.event import SignedEvent, UnsignedEvent, sign_event
from openmods.nostr.keys import decode_secret, derive_identity, encode_public, identity_diverges
from openmods.output.console import ConsoleProtocol
from openmods.services.compiler import compile_project, compile_release, resolve_published_by
from openmods.services.inspect import print_project_summary, print_release_summary
from openmods.services.publisher import PublishOptions, RelayPublisher
from openmods.services.report import PublishSummary, render_summary, summarize

__all__ = [
    "PrepareFailure",
    "PreparedEvent",
    "PrepareService",
]

type PrepareFailure = ManifestError | ValidationMismatch | MissingIdentity | InvalidEncoding | FileError


@dataclass(frozen=True, slots=True)
class PreparedEvent:
    label: str
    event: UnsignedEvent
    path: Path

    @property
    def signed(self) -> bool:
        return isinstance(self.event, SignedEvent)


@dataclass(frozen=True, slots=True)
class _Identity:
    pubkey: str
    secret: bytes | None


class PrepareService:
    def __init__(
        self,
        *,
        config: OpenModsConfig,
        console: ConsoleProtocol,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._console = console
        self._clock = clock

    # -------------------------------------------------------------------------
    # Preparation
    # -------------------------------------------------------------------------

    def _identity(self, secret: str | None) -> Result[_Identity, MissingIdentity | InvalidEncoding]:
        signer = self._config.signer
        if signer is not None and signer.is_delegated and not secret:
            self._console.info(
                "Signer mode is delegated; emitting unsigned event for remote signer (no --secret provided)."
            )

        secret_bytes: bytes | None = None
        if secret:
            decoded = decode_secret(secret)
            if isinstance(decoded, Err):
                return decoded
            secret_bytes = decoded.value

        pubkey = derive_identity(secret_bytes, self._config.author_pubkey)
        if isinstance(pubkey, Err):
            return pubkey

        if identity_diverges(secret_bytes, pubkey.value):
            self._console.warning(
                f"Secret key does not control configured authorPubkey {encode_public(pubkey.value)}; "
                "the signature will not verify for that identity."
            )
        return Ok(_Identity(pubkey=pubkey.value, secret=secret_bytes))

    def _finish(
        self, label: str, unsigned: UnsignedEvent, identity: _Identity, out: Path
    ) -> Result[PreparedEvent, FileError]:
        event = unsigned if identity.secret is None else sign_event(unsigned, identity.secret)
        written = write_json(out, event.to_dict())
        if isinstance(written, Err):
            return written
        if isinstance(event, SignedEvent):
            self._console.info(f"Signed {label} event {event.id} written to {out}")
        else:
            self._console.info(f"Unsigned {label} event written to {out}")
        return Ok(PreparedEvent(label=label, event=event, path=out))

    def prepare_project(
        self,
        manifest_path: Path,
        out: Path,
        *,
        secret: str | None = None,
        summary: bool = False,
    ) -> Result[PreparedEvent, PrepareFailure]:
        manifest = read_manifest(manifest_path, parse_project_manifest)
        if isinstance(manifest, Err):
            return manifest
        if summary:
            print_project_summary(manifest.value, self._console)

        identity = self._identity(secret)
        if isinstance(identity, Err):
            return identity

        compiled = compile_project(manifest.value, self._config, identity.value.pubkey, int(self._clock()))
        if isinstance(compiled, Err):
            return compiled
        return self._finish("project", compiled.value, identity.value, out)

    def prepare_release(
        self,
        manifest_path: Path,
        out: Path,
        *,
        secret: str | None = None,
        summary: bool = False,
    ) -> Result[PreparedEvent, PrepareFailure]:
        manifest = read_manifest(manifest_path, parse_release_manifest)
        if isinstance(manifest, Err):
            return manifest
        if summary:
            print_release_summary(manifest.value, self._console)

        identity = self._identity(secret)
        if isinstance(identity, Err):
            return identity

        published_by = resolve_published_by(self._config, identity.value.pubkey)
        compiled = compile_release(
            manifest.value,
            self._config,
            identity.value.pubkey,
            published_by,
            int(self._clock()),
        )
        if isinstance(compiled, Err):
            return compiled
        return self._finish("release", compiled.value, identity.value, out)

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def _relays(self, override: Sequence[str] | None) -> list[str]:
        return list(override) if override else list(self._config.relays)

    async def publish_prepared(
        self,
        prepared: PreparedEvent,
        transport: RelayTransport,
        *,
        relays: Sequence[str] | None = None,
        options: PublishOptions | None = None,
        cancel: CancellationContext | None = None,
    ) -> Result[PublishSummary | None, SignatureRequired]:
        """Push a prepared event. Ok(None) means there was nothing to publish to.

        The transport is closed before returning, whatever the outcome.
        """
        publisher = RelayPublisher(transport, self._console)
        try:
            event = prepared.event
            if not isinstance(event, SignedEvent):
                return Err(SignatureRequired(prepared.label))

            targets = self._relays(relays)
            if not targets:
                self._console.warning("No relays configured; skipping publish.")
                return Ok(None)

            outcomes = await publisher.publish(event, targets, options, cancel)
        finally:
            await publisher.close()

        report = summarize(outcomes)
        render_summary(report, self._console, event_id=event.id, label=prepared.label)
        return Ok(report)

    def run_publish(
        self,
        prepared: PreparedEvent,
        *,
        relays: Sequence[str] | None = None,
        options: PublishOptions | None = None,
        transport_factory: Callable[[], RelayTransport] = WebsocketRelayPool,
    ) -> Result[PublishSummary | None, SignatureRequired]:
        """Blocking entry point: Ctrl+C cancels outstanding relay attempts."""

        async def run() -> Result[PublishSummary | None, SignatureRequired]:
            cancel = CancellationContext()
            loop = asyncio.get_running_loop()
            # Not available on Windows event loops
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signal.SIGINT, cancel.cancel)
            try:
                return await self.publish_prepared(
                    prepared,
                    transport_factory(),
                    relays=relays,
                    options=options,
                    cancel=cancel,
                )
            finally:
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(signal.SIGINT)

        return asyncio.run(run())
