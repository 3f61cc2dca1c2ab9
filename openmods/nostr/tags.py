"""Typed tag variants.

Each tag kind is its own frozen dataclass. Compilers build lists of these and
only flatten them to the positional wire form (``to_wire``) when the event is
assembled, so a misplaced positional value is a type error rather than a
silently different event id.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Protocol

from openmods.nostr.event import WireTag

__all__ = [
    "AddressRefTag",
    "AmountTag",
    "AuthorTag",
    "Bolt11Tag",
    "CallbackTag",
    "CategoryTag",
    "ContentWarningTag",
    "CoordinateTag",
    "DependsTag",
    "DescriptionTag",
    "DistributionTag",
    "EventRefTag",
    "GameTag",
    "GameVersionRangeTag",
    "HashTag",
    "LabelTag",
    "LicenseTag",
    "LinkTag",
    "LnurlTag",
    "PubkeyRefTag",
    "PublishedByTag",
    "RelayTag",
    "RelaysTag",
    "RootHashTag",
    "SlugTag",
    "SummaryTag",
    "Tag",
    "TitleTag",
    "VersionTag",
    "ZapBolt12Tag",
    "ZapNameTag",
    "ZapTag",
    "format_fraction",
    "to_wire_tags",
]


class Tag(Protocol):
    def to_wire(self) -> WireTag: ...


@dataclass(frozen=True, slots=True)
class _ValueTag:
    """``[NAME, value]``."""

    NAME: ClassVar[str] = ""

    value: str

    def to_wire(self) -> WireTag:
        return (self.NAME, self.value)


@dataclass(frozen=True, slots=True)
class CoordinateTag(_ValueTag):
    """Deduplication coordinate (``d``) for addressable events."""

    NAME: ClassVar[str] = "d"


@dataclass(frozen=True, slots=True)
class GameTag(_ValueTag):
    NAME: ClassVar[str] = "game"


@dataclass(frozen=True, slots=True)
class SlugTag(_ValueTag):
    NAME: ClassVar[str] = "slug"


@dataclass(frozen=True, slots=True)
class TitleTag(_ValueTag):
    NAME: ClassVar[str] = "title"


@dataclass(frozen=True, slots=True)
class SummaryTag(_ValueTag):
    NAME: ClassVar[str] = "summary"


@dataclass(frozen=True, slots=True)
class VersionTag(_ValueTag):
    NAME: ClassVar[str] = "version"


@dataclass(frozen=True, slots=True)
class PublishedByTag(_ValueTag):
    NAME: ClassVar[str] = "published-by"


@dataclass(frozen=True, slots=True)
class RelayTag(_ValueTag):
    NAME: ClassVar[str] = "relay"


@dataclass(frozen=True, slots=True)
class CategoryTag(_ValueTag):
    NAME: ClassVar[str] = "category"


@dataclass(frozen=True, slots=True)
class LabelTag(_ValueTag):
    NAME: ClassVar[str] = "t"


@dataclass(frozen=True, slots=True)
class ContentWarningTag(_ValueTag):
    NAME: ClassVar[str] = "cw"


@dataclass(frozen=True, slots=True)
class ZapTag(_ValueTag):
    NAME: ClassVar[str] = "zap"


@dataclass(frozen=True, slots=True)
class ZapBolt12Tag(_ValueTag):
    NAME: ClassVar[str] = "zap-bolt12"


@dataclass(frozen=True, slots=True)
class LicenseTag(_ValueTag):
    NAME: ClassVar[str] = "license"


@dataclass(frozen=True, slots=True)
class DistributionTag(_ValueTag):
    NAME: ClassVar[str] = "distribution"


@dataclass(frozen=True, slots=True)
class GameVersionRangeTag(_ValueTag):
    NAME: ClassVar[str] = "game-version-range"


@dataclass(frozen=True, slots=True)
class LnurlTag(_ValueTag):
    NAME: ClassVar[str] = "lnurl"


@dataclass(frozen=True, slots=True)
class DescriptionTag(_ValueTag):
    """Description-hash commitment of a zap request or receipt."""

    NAME: ClassVar[str] = "description"


@dataclass(frozen=True, slots=True)
class PubkeyRefTag(_ValueTag):
    NAME: ClassVar[str] = "p"


@dataclass(frozen=True, slots=True)
class EventRefTag(_ValueTag):
    NAME: ClassVar[str] = "e"


@dataclass(frozen=True, slots=True)
class AddressRefTag(_ValueTag):
    """Reference to an addressable event, ``<kind>:<pubkey>:<d>``."""

    NAME: ClassVar[str] = "a"


@dataclass(frozen=True, slots=True)
class ZapNameTag(_ValueTag):
    NAME: ClassVar[str] = "zap-name"


@dataclass(frozen=True, slots=True)
class CallbackTag(_ValueTag):
    NAME: ClassVar[str] = "callback"


@dataclass(frozen=True, slots=True)
class Bolt11Tag(_ValueTag):
    NAME: ClassVar[str] = "bolt11"


@dataclass(frozen=True, slots=True)
class LinkTag:
    kind: str
    url: str

    def to_wire(self) -> WireTag:
        return ("link", self.kind, self.url)


def format_fraction(value: float) -> str:
    """Number text as JavaScript's ``String(number)`` writes it.

    Other clients compare author tags byte for byte, so ``1.0`` is ``"1"``,
    ``1e-05`` is ``"0.00001"`` and ``1e-07`` is ``"1e-7"``.
    """
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "0"
    sign = "-" if number < 0 else ""
    # repr() yields the shortest round-tripping digits, like JS does
    _, digit_tuple, exponent = Decimal(repr(abs(number))).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = int(exponent) + k  # value is 0.<digits> * 10**n
    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + text


@dataclass(frozen=True, slots=True)
class AuthorTag:
    pubkey: str
    role: str
    display_name: str | None = None
    payout_fraction: float | None = None

    def to_wire(self) -> WireTag:
        parts = ["author", self.pubkey, self.role]
        if self.display_name:
            parts.append(self.display_name)
        if self.payout_fraction is not None:
            parts.append(format_fraction(self.payout_fraction))
        return tuple(parts)


@dataclass(frozen=True, slots=True)
class DependsTag:
    target: str
    version_range: str = ""

    def to_wire(self) -> WireTag:
        return ("depends", self.target, self.version_range)


@dataclass(frozen=True, slots=True)
class HashTag:
    algorithm: str
    value: str

    NAME: ClassVar[str] = "hash"

    def to_wire(self) -> WireTag:
        return (self.NAME, f"{self.algorithm}:{self.value}")


@dataclass(frozen=True, slots=True)
class RootHashTag(HashTag):
    NAME: ClassVar[str] = "root-hash"


@dataclass(frozen=True, slots=True)
class RelaysTag:
    relays: tuple[str, ...]

    def to_wire(self) -> WireTag:
        return ("relays", *self.relays)


@dataclass(frozen=True, slots=True)
class AmountTag:
    msat: int

    def to_wire(self) -> WireTag:
        return ("amount", str(self.msat))


def to_wire_tags(tags: Iterable[Tag]) -> tuple[WireTag, ...]:
    return tuple(tag.to_wire() for tag in tags)
