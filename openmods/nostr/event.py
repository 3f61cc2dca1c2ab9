"""Protocol events: canonical serialization, content-addressed id, signatures.

The id is the SHA-256 of ``[0, pubkey, created_at, kind, tags, content]``
serialized as compact JSON with non-ASCII characters kept verbatim (NIP-01).
Events are frozen; changing any of those fields means building a new event.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from coincurve import PrivateKey, PublicKeyXOnly

from openmods.core.result import Err, Ok, Result
from openmods.core.structured import StrDict, as_obj_list, get_int, get_raw_str
from openmods.nostr.errors import EventFormatError

__all__ = [
    "KIND_PROJECT",
    "KIND_RELEASE",
    "KIND_ZAP_RECEIPT",
    "KIND_ZAP_REQUEST",
    "SignedEvent",
    "UnsignedEvent",
    "WireTag",
    "canonical_json",
    "compute_event_id",
    "event_from_dict",
    "make_tags",
    "sign_event",
    "verify_event",
]

KIND_PROJECT = 30078
KIND_RELEASE = 30079
KIND_ZAP_REQUEST = 9734
KIND_ZAP_RECEIPT = 9735

# BIP-340 auxiliary randomness; fixed so that signing is reproducible.
_AUX_RANDOMNESS = bytes(32)

WireTag = tuple[str, ...]


def canonical_json(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class UnsignedEvent:
    kind: int
    created_at: int
    pubkey: str
    tags: tuple[WireTag, ...]
    content: str

    @property
    def is_signed(self) -> bool:
        return False

    def serialize(self) -> str:
        """The exact string the event id is hashed from."""
        return canonical_json(
            [0, self.pubkey, self.created_at, self.kind, [list(t) for t in self.tags], self.content]
        )

    def first_tag(self, name: str) -> WireTag | None:
        for tag in self.tags:
            if tag and tag[0] == name:
                return tag
        return None

    def tag_value(self, name: str) -> str | None:
        """Second element of the first tag called ``name``."""
        tag = self.first_tag(name)
        if tag is None or len(tag) < 2:
            return None
        return tag[1]

    def to_dict(self) -> StrDict:
        return {
            "kind": self.kind,
            "created_at": self.created_at,
            "pubkey": self.pubkey,
            "tags": [list(t) for t in self.tags],
            "content": self.content,
        }


@dataclass(frozen=True, slots=True)
class SignedEvent(UnsignedEvent):
    id: str
    sig: str

    @property
    def is_signed(self) -> bool:
        return True

    def unsigned(self) -> UnsignedEvent:
        return UnsignedEvent(
            kind=self.kind,
            created_at=self.created_at,
            pubkey=self.pubkey,
            tags=self.tags,
            content=self.content,
        )

    def to_dict(self) -> StrDict:
        out = UnsignedEvent.to_dict(self)
        out["id"] = self.id
        out["sig"] = self.sig
        return out


def make_tags(tags: Iterable[Iterable[str]]) -> tuple[WireTag, ...]:
    return tuple(tuple(t) for t in tags)


def compute_event_id(event: UnsignedEvent) -> str:
    return hashlib.sha256(event.serialize().encode("utf-8")).hexdigest()


def sign_event(event: UnsignedEvent, secret: bytes) -> SignedEvent:
    """Compute the id and sign it with BIP-340 Schnorr.

    The caller guarantees that ``secret`` belongs to ``event.pubkey``;
    a mismatched pair produces an event that fails ``verify_event``.
    """
    if isinstance(event, SignedEvent):
        event = event.unsigned()
    event_id = compute_event_id(event)
    sig = PrivateKey(secret).sign_schnorr(bytes.fromhex(event_id), _AUX_RANDOMNESS)
    return SignedEvent(
        kind=event.kind,
        created_at=event.created_at,
        pubkey=event.pubkey,
        tags=event.tags,
        content=event.content,
        id=event_id,
        sig=sig.hex(),
    )


def verify_event(event: SignedEvent) -> bool:
    """Recompute the id from the event fields and check the signature over it."""
    if compute_event_id(event.unsigned()) != event.id:
        return False
    try:
        pubkey = PublicKeyXOnly(bytes.fromhex(event.pubkey))
        return pubkey.verify(bytes.fromhex(event.sig), bytes.fromhex(event.id))
    except ValueError:
        return False


def _parse_tags(raw: object) -> tuple[WireTag, ...] | None:
    items = as_obj_list(raw)
    if items is None:
        return None
    tags: list[WireTag] = []
    for item in items:
        parts = as_obj_list(item)
        if parts is None or not all(isinstance(p, str) for p in parts):
            return None
        tags.append(tuple(str(p) for p in parts))
    return tuple(tags)


def event_from_dict(
    data: Mapping[str, object], *, kind: int | None = None
) -> Result[UnsignedEvent, EventFormatError]:
    """Parse the wire shape; returns a SignedEvent when ``id`` and ``sig`` exist."""
    event_kind = get_int(data, "kind")
    created_at = get_int(data, "created_at")
    pubkey = get_raw_str(data, "pubkey")
    content = get_raw_str(data, "content")
    tags = _parse_tags(data.get("tags"))

    if event_kind is None or created_at is None:
        return Err(EventFormatError("kind and created_at must be integers"))
    if pubkey is None or content is None:
        return Err(EventFormatError("pubkey and content must be strings"))
    if tags is None:
        return Err(EventFormatError("tags must be a list of string lists"))
    if kind is not None and event_kind != kind:
        return Err(EventFormatError(f"expected kind {kind}, received kind {event_kind}"))

    event_id = get_raw_str(data, "id")
    sig = get_raw_str(data, "sig")
    if event_id is not None and sig is not None:
        return Ok(
            SignedEvent(
                kind=event_kind,
                created_at=created_at,
                pubkey=pubkey,
                tags=tags,
                content=content,
                id=event_id,
                sig=sig,
            )
        )
    return Ok(
        UnsignedEvent(
            kind=event_kind,
            created_at=created_at,
            pubkey=pubkey,
            tags=tags,
            content=content,
        )
    )
