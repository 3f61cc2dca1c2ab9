"""Verify a signed release event and compare it with the manifest on disk."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from openmods.core.files import FileError, read_json_object
from openmods.core.result import Err, Ok, Result
from openmods.core.structured import as_str_dict
from openmods.manifest.common import ManifestError, read_manifest
from openmods.manifest.release import ReleaseManifest, parse_release_manifest
from openmods.nostr.errors import EventFormatError, VerificationFailed
from openmods.nostr.event import KIND_RELEASE, SignedEvent, UnsignedEvent, event_from_dict, verify_event
from openmods.nostr.keys import NPUB, decode_public

type VerifyError = FileError | EventFormatError | ManifestError | VerificationFailed


@dataclass(frozen=True, slots=True)
class VerifiedRelease:
    event: SignedEvent
    manifest_matched: bool


def check_signature(event: UnsignedEvent) -> Result[SignedEvent, VerificationFailed]:
    """Signature, id and ``published-by`` consistency of a release event."""
    if not isinstance(event, SignedEvent):
        return Err(VerificationFailed("event is unsigned"))
    if not verify_event(event):
        return Err(VerificationFailed("event signature verification failed"))

    published_by = event.tag_value("published-by")
    if published_by:
        if published_by.startswith(NPUB):
            decoded = decode_public(published_by)
            if isinstance(decoded, Err):
                return Err(VerificationFailed(f"invalid published-by tag: {decoded.error.reason}"))
            if decoded.value != event.pubkey:
                return Err(VerificationFailed("published-by npub does not match event pubkey"))
        elif published_by != event.pubkey:
            return Err(VerificationFailed("published-by tag must match event pubkey"))
    return Ok(event)


def content_manifest(event: UnsignedEvent) -> Result[ReleaseManifest, VerificationFailed]:
    try:
        raw: object = json.loads(event.content)
    except json.JSONDecodeError as e:
        return Err(VerificationFailed(f"event content is not JSON: {e}"))
    data = as_str_dict(raw)
    if data is None:
        return Err(VerificationFailed("event content is not a JSON object"))
    parsed = parse_release_manifest(data)
    if isinstance(parsed, Err):
        return Err(VerificationFailed(parsed.error.message))
    return Ok(parsed.value)


def compare_manifest(event: UnsignedEvent, manifest: ReleaseManifest) -> Result[None, VerificationFailed]:
    """Both sides are normalized through the manifest schema before comparing."""
    embedded = content_manifest(event)
    if isinstance(embedded, Err):
        return embedded
    if embedded.value.to_dict() != manifest.to_dict():
        return Err(VerificationFailed("manifest file does not match event content"))
    return Ok(None)


def verify_release(event_path: Path, manifest_path: Path | None = None) -> Result[VerifiedRelease, VerifyError]:
    data = read_json_object(event_path)
    if isinstance(data, Err):
        return data
    parsed = event_from_dict(data.value, kind=KIND_RELEASE)
    if isinstance(parsed, Err):
        return parsed
    signed = check_signature(parsed.value)
    if isinstance(signed, Err):
        return signed

    if manifest_path is None:
        return Ok(VerifiedRelease(event=signed.value, manifest_matched=False))

    manifest = read_manifest(manifest_path, parse_release_manifest)
    if isinstance(manifest, Err):
        return manifest
    compared = compare_manifest(signed.value, manifest.value)
    if isinstance(compared, Err):
        return compared
    return Ok(VerifiedRelease(event=signed.value, manifest_matched=True))
