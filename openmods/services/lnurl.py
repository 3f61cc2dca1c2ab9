"""LNURL-pay target resolution (LUD-06, LUD-16) and callback invocation.

Network failures never abort a simulation: a pay endpoint that cannot be
fetched yields default metadata and callback, and a failed callback yields
no invoice (the caller then falls back to a placeholder).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from bech32 import CHARSET, bech32_hrp_expand, bech32_polymod, convertbits

from openmods.core.files import FileError
from openmods.core.result import Err, Ok, Result
from openmods.core.structured import StrDict, get_bool, get_number, get_raw_str, is_url
from openmods.net.http import HttpClient
from openmods.nostr.errors import InvalidEncoding
from openmods.nostr.event import UnsignedEvent, canonical_json
from openmods.output.console import ConsoleProtocol

__all__ = [
    "DEFAULT_METADATA",
    "PaymentTarget",
    "callback_url",
    "decode_lnurl",
    "invoke_callback",
    "normalize_lnurl",
    "resolve_payment_target",
]

DEFAULT_METADATA = canonical_json([["text/plain", "OpenMods zap request"]])

_LNURL_HRP = "lnurl"
_CHECKSUM_LENGTH = 6


@dataclass(frozen=True, slots=True)
class PaymentTarget:
    original: str
    resolved_url: str
    metadata: str
    callback: str | None = None
    min_sendable: int | None = None
    max_sendable: int | None = None
    allows_nostr: bool | None = None
    nostr_pubkey: str | None = None

    @property
    def description_hash(self) -> str:
        """SHA-256 of the exact metadata bytes the pay endpoint served."""
        return hashlib.sha256(self.metadata.encode("utf-8")).hexdigest()


def decode_lnurl(value: str) -> Result[str, InvalidEncoding]:
    """Decode a bech32 ``lnurl1...`` string into its URL.

    LNURLs routinely exceed the 90 character limit of BIP-173 strings, so the
    checksum is verified here without a length cap.
    """
    text = value.strip().lower()
    if text.startswith("lightning:"):
        text = text[len("lightning:") :]
    pos = text.rfind("1")
    if pos < 1 or pos + _CHECKSUM_LENGTH + 1 > len(text):
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason="missing bech32 separator or checksum"))
    hrp, payload = text[:pos], text[pos + 1 :]
    if hrp != _LNURL_HRP:
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason=f"received {hrp}"))
    if any(c not in CHARSET for c in payload):
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason="invalid bech32 character"))

    data = [CHARSET.find(c) for c in payload]
    if bech32_polymod(bech32_hrp_expand(hrp) + data) != 1:
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason="bech32 checksum mismatch"))
    decoded = convertbits(data[:-_CHECKSUM_LENGTH], 5, 8, False)
    if decoded is None:
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason="invalid payload padding"))
    try:
        return Ok(bytes(decoded).decode("utf-8"))
    except UnicodeDecodeError:
        return Err(InvalidEncoding(expected=_LNURL_HRP, reason="payload is not UTF-8"))


def normalize_lnurl(value: str) -> Result[str, InvalidEncoding]:
    """Turn a lightning address, bech32 LNURL or plain URL into the pay endpoint URL."""
    value = value.strip()
    if "@" in value:
        name, _, domain = value.partition("@")
        if not name or not domain or "@" in domain:
            return Err(InvalidEncoding(expected="lightning address", reason="Invalid lightning address format"))
        return Ok(f"https://{domain}/.well-known/lnurlp/{name}")

    if value.lower().startswith(_LNURL_HRP):
        decoded = decode_lnurl(value)
        if isinstance(decoded, Err):
            return decoded
        value = decoded.value

    if not is_url(value):
        return Err(InvalidEncoding(expected="LNURL", reason=f"{value!r} is not a URL"))
    return Ok(value)


def _from_pay_response(payload: StrDict) -> dict[str, object]:
    fields: dict[str, object] = {}
    metadata = get_raw_str(payload, "metadata")
    if metadata:
        fields["metadata"] = metadata
    callback = get_raw_str(payload, "callback")
    if callback:
        fields["callback"] = callback
    allows_nostr = get_bool(payload, "allowsNostr")
    if allows_nostr is None:
        allows_nostr = get_bool(payload, "nostr")
    fields["allows_nostr"] = allows_nostr
    fields["nostr_pubkey"] = get_raw_str(payload, "nostrPubkey")
    for key, attr in (("minSendable", "min_sendable"), ("maxSendable", "max_sendable")):
        amount = get_number(payload, key)
        fields[attr] = int(amount) if amount is not None else None
    return fields


def resolve_payment_target(
    value: str,
    http: HttpClient,
    metadata_path: Path | None = None,
    console: ConsoleProtocol | None = None,
) -> Result[PaymentTarget, InvalidEncoding | FileError]:
    """Resolve ``value`` to a pay target.

    A metadata file, when given, is used verbatim and suppresses the fetch.
    """
    resolved = normalize_lnurl(value)
    if isinstance(resolved, Err):
        return resolved
    url = resolved.value

    metadata: str | None = None
    fields: dict[str, object] = {}
    if metadata_path is not None:
        try:
            metadata = metadata_path.read_text(encoding="utf-8")
        except OSError as e:
            return Err(FileError(f"Cannot read LNURL metadata: {e}", path=metadata_path))
    else:
        response = http.get_json(url)
        if isinstance(response, Err):
            if console is not None:
                console.warning(f"LNURL fetch failed ({response.error}); using default metadata.")
        else:
            fields = _from_pay_response(response.value)
            fetched = fields.get("metadata")
            metadata = fetched if isinstance(fetched, str) else None

    callback = fields.get("callback")
    min_sendable = fields.get("min_sendable")
    max_sendable = fields.get("max_sendable")
    allows_nostr = fields.get("allows_nostr")
    nostr_pubkey = fields.get("nostr_pubkey")
    return Ok(
        PaymentTarget(
            original=value,
            resolved_url=url,
            metadata=metadata or DEFAULT_METADATA,
            callback=callback if isinstance(callback, str) else urljoin(url, "/lnurl/callback"),
            min_sendable=min_sendable if isinstance(min_sendable, int) else None,
            max_sendable=max_sendable if isinstance(max_sendable, int) else None,
            allows_nostr=allows_nostr if isinstance(allows_nostr, bool) else None,
            nostr_pubkey=nostr_pubkey if isinstance(nostr_pubkey, str) else None,
        )
    )


def callback_url(callback: str, amount_msat: int, request: UnsignedEvent) -> str:
    """Callback URL with ``amount`` and, for signed requests, ``nostr`` set."""
    parts = urlsplit(callback)
    params = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in ("amount", "nostr")]
    params.append(("amount", str(amount_msat)))
    if request.is_signed:
        params.append(("nostr", canonical_json(request.to_dict())))
    return urlunsplit(parts._replace(query=urlencode(params)))


def invoke_callback(
    target: PaymentTarget,
    amount_msat: int,
    request: UnsignedEvent,
    http: HttpClient,
    console: ConsoleProtocol | None = None,
) -> str | None:
    """Ask the pay endpoint for an invoice. Returns None when none was obtained."""

    def warn(message: str) -> None:
        if console is not None:
            console.warning(message)

    if not target.callback:
        warn("LNURL callback URL missing; skipping invocation.")
        return None
    if not request.is_signed:
        warn("Zap request unsigned; invoking callback without nostr payload.")

    response = http.get_json(callback_url(target.callback, amount_msat, request))
    if isinstance(response, Err):
        warn(f"Failed to invoke LNURL callback: {response.error}")
        return None

    invoice = get_raw_str(response.value, "pr") or get_raw_str(response.value, "invoice")
    if not invoice:
        warn("LNURL callback succeeded but did not include an invoice; using simulated value.")
        return None
    if console is not None:
        console.info("LNURL callback returned invoice.")
    return invoice
