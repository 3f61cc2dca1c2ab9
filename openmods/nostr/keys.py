"""NIP-19 key material and identity derivation.

Secrets travel as ``nsec1...`` strings and public identities as ``npub1...``
strings; internally a secret is 32 raw bytes and a public identity is the
lowercase hex of the 32-byte x-only secp256k1 public key.
"""

from __future__ import annotations

from bech32 import bech32_decode, bech32_encode, convertbits
from coincurve import PrivateKey

from openmods.core.result import Err, Ok, Result
from openmods.nostr.errors import IdentityError, InvalidEncoding, MissingIdentity

__all__ = [
    "NPUB",
    "NSEC",
    "decode_public",
    "decode_secret",
    "derive_identity",
    "encode_public",
    "encode_secret",
    "identity_diverges",
    "public_key_of",
]

NSEC = "nsec"
NPUB = "npub"

_KEY_LENGTH = 32


def _decode_key(value: str, hrp: str) -> Result[bytes, InvalidEncoding]:
    value = value.strip()
    prefix = value.split("1", 1)[0].lower() if "1" in value else value[:4].lower()
    if prefix != hrp:
        return Err(
            InvalidEncoding(
                expected=hrp,
                reason=f"expected bech32 {hrp} string, received {prefix or 'empty value'!r}",
            )
        )

    decoded_hrp, data = bech32_decode(value)
    if decoded_hrp is None or data is None:
        return Err(InvalidEncoding(expected=hrp, reason="bech32 checksum or character set mismatch"))
    if decoded_hrp != hrp:
        return Err(InvalidEncoding(expected=hrp, reason=f"received {decoded_hrp}"))

    payload = convertbits(data, 5, 8, False)
    if payload is None or len(payload) != _KEY_LENGTH:
        return Err(InvalidEncoding(expected=hrp, reason="payload is not a 32-byte key"))
    return Ok(bytes(payload))


def _encode_key(raw: bytes, hrp: str) -> str:
    if len(raw) != _KEY_LENGTH:
        raise ValueError(f"{hrp} payload must be {_KEY_LENGTH} bytes, got {len(raw)}")
    words = convertbits(list(raw), 8, 5, True)
    if words is None:
        raise ValueError(f"cannot convert {hrp} payload to bech32 words")
    return bech32_encode(hrp, words)


def decode_secret(nsec: str) -> Result[bytes, InvalidEncoding]:
    """Decode an ``nsec`` string into 32 secret bytes.

    The scalar is also checked against the curve order so an undecodable
    secret never reaches the signer.
    """
    decoded = _decode_key(nsec, NSEC)
    if isinstance(decoded, Err):
        return decoded
    try:
        PrivateKey(decoded.value)
    except ValueError:
        return Err(InvalidEncoding(expected=NSEC, reason="not a valid secp256k1 secret"))
    return decoded


def decode_public(npub: str) -> Result[str, InvalidEncoding]:
    """Decode an ``npub`` string into a hex public key."""
    decoded = _decode_key(npub, NPUB)
    if isinstance(decoded, Err):
        return decoded
    return Ok(decoded.value.hex())


def encode_secret(secret: bytes) -> str:
    return _encode_key(secret, NSEC)


def encode_public(pubkey_hex: str) -> str:
    return _encode_key(bytes.fromhex(pubkey_hex), NPUB)


def public_key_of(secret: bytes) -> str:
    """Hex x-only public key for a secret (BIP-340)."""
    compressed = PrivateKey(secret).public_key.format(compressed=True)
    return compressed[1:].hex()


def derive_identity(
    secret: bytes | None = None,
    configured_public: str | None = None,
) -> Result[str, IdentityError]:
    """Resolve the pubkey an event is issued under.

    A configured npub takes precedence over the secret's own public key, even
    when both are supplied. Callers that sign with the secret should compare
    the two (see ``identity_diverges``).
    """
    if configured_public:
        return decode_public(configured_public)
    if secret is None:
        return Err(MissingIdentity())
    return Ok(public_key_of(secret))


def identity_diverges(secret: bytes | None, pubkey_hex: str) -> bool:
    """True when a secret is present but does not control ``pubkey_hex``."""
    if secret is None:
        return False
    return public_key_of(secret) != pubkey_hex
