from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from openmods.core.config import ConfigError, OpenModsConfig
from openmods.core.files import FileError, write_json
from openmods.core.result import Err, Ok, Result
from openmods.net.http import HttpClient
from openmods.nostr.errors import (
    AmountOutOfRange,
    EventFormatError,
    InvalidEncoding,
    MissingCoordinate,
    MissingIdentity,
)
from openmods.nostr.event import SignedEvent, UnsignedEvent, sign_event
from openmods.nostr.keys import decode_public, decode_secret, encode_public, public_key_of
from openmods.output.console import ConsoleProtocol, Style
from openmods.services.lnurl import PaymentTarget, invoke_callback, resolve_payment_target
from openmods.services.zap import (
    build_payment_receipt,
    build_payment_request,
    load_release_event,
    metadata_warnings,
)

__all__ = ["ZapFailure", "ZapSimulateRequest", "ZapSimulateService", "ZapSimulation"]

type ZapFailure = (
    ConfigError
    | FileError
    | EventFormatError
    | InvalidEncoding
    | MissingIdentity
    | MissingCoordinate
    | AmountOutOfRange
)


@dataclass(frozen=True, slots=True)
class ZapSimulateRequest:
    release_event: Path
    out: Path
    amount_sats: int = 100
    lnurl: str | None = None
    lnurl_metadata: Path | None = None
    message: str = ""
    relays: Sequence[str] = ()
    secret: str | None = None
    pubkey: str | None = None
    receipt_secret: str | None = None
    receiver: str | None = None
    receipt_out: Path | None = None
    invoke_callback: bool = False
    summary: bool = False


@dataclass(frozen=True, slots=True)
class ZapSimulation:
    target: PaymentTarget
    request: UnsignedEvent
    receipt: UnsignedEvent | None
    invoice: str | None


@dataclass(frozen=True, slots=True)
class _Signer:
    pubkey: str
    secret: bytes | None


def _signer(secret: str | None, npub: str | None) -> Result[_Signer, InvalidEncoding | MissingIdentity]:
    if secret:
        decoded = decode_secret(secret)
        if isinstance(decoded, Err):
            return decoded
        return Ok(_Signer(pubkey=public_key_of(decoded.value), secret=decoded.value))
    if not npub:
        return Err(
            MissingIdentity(
                message="Provide --secret or --pubkey to define zapper identity",
                hint="Or export OPENMODS_NSEC",
            )
        )
    pubkey = decode_public(npub)
    if isinstance(pubkey, Err):
        return pubkey
    return Ok(_Signer(pubkey=pubkey.value, secret=None))


class ZapSimulateService:
    def __init__(
        self,
        *,
        config: OpenModsConfig | None,
        http: HttpClient,
        console: ConsoleProtocol,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._http = http
        self._console = console
        self._clock = clock

    def run(self, req: ZapSimulateRequest) -> Result[ZapSimulation, ZapFailure]:
        release = load_release_event(req.release_event)
        if isinstance(release, Err):
            return release

        zap = self._config.zap if self._config is not None else None
        lnurl = req.lnurl or (zap.lnurl if zap is not None else None)
        if not lnurl:
            return Err(
                ConfigError(
                    "LNURL is required",
                    hint="Pass --lnurl or configure zap.lnurl in openmods.json",
                )
            )
        if req.amount_sats <= 0:
            return Err(AmountOutOfRange(req.amount_sats * 1000))
        amount_msat = req.amount_sats * 1000
        relays = list(req.relays) or (list(self._config.relays) if self._config is not None else [])

        target = resolve_payment_target(lnurl, self._http, req.lnurl_metadata, self._console)
        if isinstance(target, Err):
            return target
        for warning in metadata_warnings(target.value, release.value):
            self._console.warning(warning)

        zapper = _signer(req.secret, req.pubkey)
        if isinstance(zapper, Err):
            return zapper

        built = build_payment_request(
            release.value,
            target.value,
            amount_msat,
            relays,
            req.message,
            zapper.value.pubkey,
            int(self._clock()),
        )
        if isinstance(built, Err):
            return built
        request = built.value
        if zapper.value.secret is not None:
            request = sign_event(request, zapper.value.secret)

        written = write_json(req.out, request.to_dict())
        if isinstance(written, Err):
            return written

        if req.summary:
            self._print_summary(request, req.amount_sats, target.value, relays)

        invoice: str | None = None
        if req.invoke_callback:
            invoice = invoke_callback(target.value, amount_msat, request, self._http, self._console)

        receipt = self._receipt(req, request, release.value, target.value, amount_msat, invoice)
        if isinstance(receipt, Err):
            return receipt

        self._console.success(f"Zap request saved to {req.out}")
        return Ok(ZapSimulation(target=target.value, request=request, receipt=receipt.value, invoice=invoice))

    def _receipt(
        self,
        req: ZapSimulateRequest,
        request: UnsignedEvent,
        release: SignedEvent,
        target: PaymentTarget,
        amount_msat: int,
        invoice: str | None,
    ) -> Result[UnsignedEvent | None, ZapFailure]:
        if req.receipt_out is None:
            return Ok(None)

        receiver = req.receiver or (self._config.author_pubkey if self._config is not None else None)
        if not receiver:
            self._console.warning("Skipping receipt generation: receiver npub not supplied")
            return Ok(None)
        receiver_hex = decode_public(receiver)
        if isinstance(receiver_hex, Err):
            return receiver_hex

        secret: bytes | None = None
        pubkey = receiver_hex.value
        if req.receipt_secret:
            decoded = decode_secret(req.receipt_secret)
            if isinstance(decoded, Err):
                return decoded
            secret = decoded.value
            # A signed receipt is issued by whoever holds the key.
            pubkey = public_key_of(secret)
            if pubkey != receiver_hex.value:
                self._console.warning(
                    f"Receipt secret belongs to {encode_public(pubkey)}, not receiver {receiver}; "
                    "signing as the secret's identity."
                )

        built = build_payment_receipt(
            request,
            release,
            target,
            pubkey,
            amount_msat,
            int(self._clock()),
            invoice=invoice,
        )
        if isinstance(built, Err):
            return built
        receipt = built.value if secret is None else sign_event(built.value, secret)

        written = write_json(req.receipt_out, receipt.to_dict())
        if isinstance(written, Err):
            return written
        self._console.info(f"Zap receipt saved to {req.receipt_out}")
        return Ok(receipt)

    def _print_summary(
        self,
        request: UnsignedEvent,
        amount_sats: int,
        target: PaymentTarget,
        relays: Sequence[str],
    ) -> None:
        console = self._console
        console.print(f"Zap amount: {amount_sats} sats")
        console.print(f"LNURL: {target.original}")
        if target.callback:
            console.print(f"Callback: {target.callback}")
        if target.allows_nostr is not None:
            console.print(f"LNURL allows nostr: {'yes' if target.allows_nostr else 'no'}")
        if target.nostr_pubkey:
            console.print(f"LNURL nostr pubkey: {target.nostr_pubkey}")
        if relays:
            console.print(f"Target relays: {', '.join(relays)}")
        console.print(f"Description hash: {target.description_hash}", Style.DIM)
        console.print(f"Target release: {request.tag_value('a') or 'unknown'}")
        if isinstance(request, SignedEvent):
            console.print(f"Event id: {request.id}")
        else:
            console.print("Event unsigned; forward to delegated signer to complete.", Style.DIM)
