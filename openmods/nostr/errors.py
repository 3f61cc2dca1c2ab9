"""Error variants for event compilation, key material and zap requests.

All of these are fatal for the operation that produced them: no partial
event is returned alongside an error.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationMismatch:
    """Manifest identifiers disagree with the local openmods.json."""

    field: str
    manifest_value: str
    config_value: str

    @property
    def message(self) -> str:
        return (
            f"Manifest {self.field} {self.manifest_value} "
            f"does not match config {self.config_value}"
        )

    @property
    def hint(self) -> str:
        return "Edit the manifest or run openmods init in the matching project"


@dataclass(frozen=True, slots=True)
class MissingIdentity:
    message: str = "Unable to derive pubkey: provide --author-pubkey or --secret"
    hint: str | None = "Set authorPubkey in openmods.json or export OPENMODS_NSEC"


@dataclass(frozen=True, slots=True)
class InvalidEncoding:
    """A bech32 string did not decode to the expected type."""

    expected: str
    reason: str

    @property
    def message(self) -> str:
        return f"Expected {self.expected}: {self.reason}"


@dataclass(frozen=True, slots=True)
class SignatureRequired:
    """An unsigned event was about to be pushed to relays."""

    label: str

    @property
    def message(self) -> str:
        return f"Cannot publish unsigned {self.label} event; provide --secret or OPENMODS_NSEC."

    @property
    def hint(self) -> str:
        return "Or forward the written event file to your delegated signer"


@dataclass(frozen=True, slots=True)
class EventFormatError:
    """An event file does not have the wire shape (or the expected kind)."""

    reason: str

    @property
    def message(self) -> str:
        return f"Invalid event: {self.reason}"


@dataclass(frozen=True, slots=True)
class MissingCoordinate:
    event_id: str | None = None

    @property
    def message(self) -> str:
        return "Target event missing deterministic 'd' tag"


def _sats(msat: int) -> str:
    return str(msat // 1000)


@dataclass(frozen=True, slots=True)
class AmountOutOfRange:
    """Requested zap amount is outside the bounds declared by the pay target.

    Bounds are inclusive. With no bounds set the amount itself was not positive.
    """

    amount_msat: int
    min_msat: int | None = None
    max_msat: int | None = None

    @property
    def message(self) -> str:
        if self.min_msat is not None and self.amount_msat < self.min_msat:
            return (
                f"Amount {_sats(self.amount_msat)} sats is below LNURL minimum "
                f"{_sats(self.min_msat)} sats"
            )
        if self.max_msat is not None and self.amount_msat > self.max_msat:
            return (
                f"Amount {_sats(self.amount_msat)} sats exceeds LNURL maximum "
                f"{_sats(self.max_msat)} sats"
            )
        return "Amount must be a positive number of millisatoshis"


@dataclass(frozen=True, slots=True)
class VerificationFailed:
    reason: str

    @property
    def message(self) -> str:
        return f"Release verification failed: {self.reason}"


IdentityError = MissingIdentity | InvalidEncoding
PrepareError = ValidationMismatch | MissingIdentity | InvalidEncoding
PaymentError = MissingCoordinate | AmountOutOfRange
