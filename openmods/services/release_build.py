"""Build a release manifest from local artifact files and magnet links."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from openmods.core.config import OpenModsConfig
from openmods.core.files import FileError
from openmods.core.result import Err, Ok, Result, collect
from openmods.manifest.common import ManifestError
from openmods.manifest.hashing import aggregate_root_hash, hash_file_sha256
from openmods.manifest.release import (
    VERSION_RE,
    ChangelogEntry,
    ReleaseArtifact,
    ReleaseManifest,
    parse_release_manifest,
)

SCHEMA_VERSION = "1.0.0"
MAGNET_PREFIX = "magnet:?"


@dataclass(frozen=True, slots=True)
class BuildRequest:
    version: str
    artifacts: Sequence[str]
    notes: Path | None = None
    display_version: str | None = None


def infer_artifact_type(uri: str) -> str:
    if uri.endswith(".torrent"):
        return "torrent"
    if uri.startswith(MAGNET_PREFIX):
        return "magnet"
    if uri.startswith("http"):
        return "https"
    if uri.startswith("ipfs://"):
        return "ipfs"
    return "file"


def iso_now() -> str:
    now = datetime.now(UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _read_notes(path: Path | None) -> Result[str, FileError]:
    if path is None:
        return Ok("")
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Ok("")
    except OSError as e:
        return Err(FileError(f"Cannot read release notes: {e}", path=path))


def _build_artifact(uri: str, root: Path) -> Result[ReleaseArtifact, FileError]:
    if uri.startswith(MAGNET_PREFIX):
        return Ok(ReleaseArtifact(type="magnet", uri=uri))

    path = root / uri
    try:
        size = path.stat().st_size
        digest = hash_file_sha256(path)
    except OSError as e:
        return Err(FileError(f"Cannot read artifact {uri}: {e}", path=path, hint="Pass paths relative to the project root"))
    return Ok(ReleaseArtifact(type=infer_artifact_type(uri), uri=uri, size_bytes=size, hashes=(digest,)))


def build_release_manifest(
    request: BuildRequest,
    config: OpenModsConfig,
    root: Path,
    now: Callable[[], str] = iso_now,
) -> Result[ReleaseManifest, FileError | ManifestError]:
    """Hash every artifact and assemble a manifest with a root hash over them."""
    if not request.artifacts:
        return Err(ManifestError("At least one --artifact must be provided"))
    if not VERSION_RE.match(request.version):
        return Err(ManifestError(f"Release version {request.version!r} is not a semantic version"))

    notes = _read_notes(request.notes)
    if isinstance(notes, Err):
        return notes

    artifacts = collect(_build_artifact(uri, root) for uri in request.artifacts)
    if isinstance(artifacts, Err):
        return artifacts

    root_hash = aggregate_root_hash([h for a in artifacts.value for h in a.hashes or ()])
    manifest = ReleaseManifest(
        schema_version=SCHEMA_VERSION,
        game_id=config.game_id,
        slug=config.project_slug,
        version=request.version,
        display_version=request.display_version or request.version,
        release_date=now(),
        changelog=(ChangelogEntry(title="notes", body=notes.value),) if notes.value else (),
        artifacts=tuple(artifacts.value),
        hashes=(root_hash,) if root_hash is not None else None,
    )
    # Round-trip through the parser so a built manifest is always loadable.
    return parse_release_manifest(manifest.to_dict())
