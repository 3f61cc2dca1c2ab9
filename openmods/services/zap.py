"""Zap requests (kind 9734) and simulated zap receipts (kind 9735) for releases."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import urlsplit

from openmods.core.files import FileError, read_json_object
from openmods.core.result import Err, Ok, Result
from openmods.nostr.errors import AmountOutOfRange, EventFormatError, MissingCoordinate, PaymentError
from openmods.nostr.event import (
    KIND_RELEASE,
    KIND_ZAP_RECEIPT,
    KIND_ZAP_REQUEST,
    SignedEvent,
    UnsignedEvent,
    event_from_dict,
)
from openmods.nostr.tags import (
    AddressRefTag,
    AmountTag,
    Bolt11Tag,
    CallbackTag,
    DescriptionTag,
    EventRefTag,
    LnurlTag,
    PubkeyRefTag,
    RelaysTag,
    Tag,
    ZapNameTag,
    to_wire_tags,
)
from openmods.services.lnurl import PaymentTarget

__all__ = [
    "build_payment_receipt",
    "build_payment_request",
    "coordinate_of",
    "is_simulated_invoice",
    "load_release_event",
    "metadata_warnings",
    "simulated_invoice",
]

_SIMULATED_INVOICE_RE = re.compile(r"lnbc(\d{8,})0n1p[A-Za-z0-9]{1,10}\1")


def coordinate_of(event: UnsignedEvent) -> Result[str, MissingCoordinate]:
    """``<kind>:<pubkey>:<d>`` address of an addressable event."""
    identifier = event.tag_value("d")
    if identifier is None:
        return Err(MissingCoordinate(event_id=getattr(event, "id", None)))
    return Ok(f"{event.kind}:{event.pubkey}:{identifier}")


def _check_amount(amount_msat: int, target: PaymentTarget) -> AmountOutOfRange | None:
    if amount_msat <= 0:
        return AmountOutOfRange(amount_msat)
    if target.min_sendable is not None and amount_msat < target.min_sendable:
        return AmountOutOfRange(amount_msat, min_msat=target.min_sendable, max_msat=target.max_sendable)
    if target.max_sendable is not None and amount_msat > target.max_sendable:
        return AmountOutOfRange(amount_msat, min_msat=target.min_sendable, max_msat=target.max_sendable)
    return None


def build_payment_request(
    target_event: SignedEvent,
    target: PaymentTarget,
    amount_msat: int,
    relays: Sequence[str],
    message: str,
    zapper_pubkey: str,
    created_at: int,
) -> Result[UnsignedEvent, PaymentError]:
    coordinate = coordinate_of(target_event)
    if isinstance(coordinate, Err):
        return coordinate
    out_of_range = _check_amount(amount_msat, target)
    if out_of_range is not None:
        return Err(out_of_range)

    tags: list[Tag] = [
        RelaysTag(tuple(relays)),
        AmountTag(amount_msat),
        LnurlTag(target.resolved_url),
        DescriptionTag(target.description_hash),
        PubkeyRefTag(target_event.pubkey),
        EventRefTag(target_event.id),
        AddressRefTag(coordinate.value),
    ]
    if message:
        tags.append(ZapNameTag(message))
    return Ok(
        UnsignedEvent(
            kind=KIND_ZAP_REQUEST,
            created_at=created_at,
            pubkey=zapper_pubkey,
            tags=to_wire_tags(tags),
            content=message,
        )
    )


def build_payment_receipt(
    request: UnsignedEvent,
    target_event: SignedEvent,
    target: PaymentTarget,
    receiver_pubkey: str,
    amount_msat: int,
    created_at: int,
    invoice: str | None = None,
) -> Result[UnsignedEvent, MissingCoordinate]:
    """Receipt for ``request``; the caller signs it when receiver keys exist."""
    coordinate = request.tag_value("a")
    if coordinate is None:
        fallback = coordinate_of(target_event)
        if isinstance(fallback, Err):
            return fallback
        coordinate = fallback.value

    sats = amount_msat // 1000
    tags: list[Tag] = [
        PubkeyRefTag(request.pubkey),
        AddressRefTag(coordinate),
        DescriptionTag(target.description_hash),
    ]
    if target.callback:
        tags.append(CallbackTag(target.callback))
    tags.append(LnurlTag(target.resolved_url))
    tags.append(Bolt11Tag(invoice or simulated_invoice(sats, target.callback)))
    if isinstance(request, SignedEvent):
        tags.append(EventRefTag(request.id))
    return Ok(
        UnsignedEvent(
            kind=KIND_ZAP_RECEIPT,
            created_at=created_at,
            pubkey=receiver_pubkey,
            tags=to_wire_tags(tags),
            content=f"Zap receipt for {sats} sats (simulated)",
        )
    )


def simulated_invoice(amount_sats: int, callback: str | None) -> str:
    """Recognisable placeholder bolt11 string; not payable."""
    padded = str(amount_sats).rjust(8, "0")
    host = ""
    if callback:
        try:
            host = re.sub(r"[^A-Za-z0-9]", "", urlsplit(callback).netloc)[:10]
        except ValueError:
            host = ""
    return f"lnbc{padded}0n1p{host or 'openmods'}{padded}"


def is_simulated_invoice(invoice: str) -> bool:
    return _SIMULATED_INVOICE_RE.fullmatch(invoice) is not None


def metadata_warnings(target: PaymentTarget, event: UnsignedEvent) -> list[str]:
    """Advisory checks on the pay target; none of them block a zap."""
    warnings: list[str] = []
    identifier = event.tag_value("d") or ""
    try:
        entries: object = json.loads(target.metadata)
    except json.JSONDecodeError:
        entries = None

    if not isinstance(entries, list):
        warnings.append("Unable to parse LNURL metadata; continuing with its raw hash.")
    else:
        texts = [
            e[1]
            for e in entries
            if isinstance(e, list) and len(e) >= 2 and e[0] == "text/plain" and isinstance(e[1], str)
        ]
        if not any(identifier in text for text in texts):
            warnings.append("LNURL metadata does not reference the release; ensure the callback validates the zap target.")

    if target.allows_nostr is False:
        warnings.append("LNURL endpoint reports nostr support disabled; verify relay acceptance.")
    return warnings


def load_release_event(path: Path) -> Result[SignedEvent, FileError | EventFormatError]:
    data = read_json_object(path)
    if isinstance(data, Err):
        return data
    event = event_from_dict(data.value, kind=KIND_RELEASE)
    if isinstance(event, Err):
        return event
    if not isinstance(event.value, SignedEvent):
        return Err(EventFormatError("release event is unsigned; sign it before zapping"))
    return Ok(event.value)
