"""Release manifest (``artifacts/release/manifest.json``)."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from openmods.core.result import Err, Ok, Result
from openmods.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_number,
    get_raw_str,
    get_table,
)
from openmods.manifest.common import HashEntry, ManifestError, optional_str_tuple, parse_hashes

__all__ = [
    "ARTIFACT_TYPES",
    "VERSION_RE",
    "ChangelogEntry",
    "Compatibility",
    "ReleaseArtifact",
    "ReleaseDependency",
    "ReleaseManifest",
    "ZapSplit",
    "parse_release_manifest",
]

VERSION_RE = re.compile(r"^v?[0-9]+\.[0-9]+\.[0-9]+(-[0-9A-Za-z.-]+)?$")
ARTIFACT_TYPES = ("torrent", "magnet", "https", "ipfs", "file")


@dataclass(frozen=True, slots=True)
class ChangelogEntry:
    title: str
    body: str


@dataclass(frozen=True, slots=True)
class ReleaseArtifact:
    type: str
    uri: str
    size_bytes: int | None = None
    hashes: tuple[HashEntry, ...] | None = None

    def to_dict(self) -> StrDict:
        out: StrDict = {"type": self.type, "uri": self.uri}
        if self.size_bytes is not None:
            out["sizeBytes"] = self.size_bytes
        if self.hashes is not None:
            out["hashes"] = [h.to_dict() for h in self.hashes]
        return out


@dataclass(frozen=True, slots=True)
class Compatibility:
    game_version_range: str
    load_order_hints: tuple[str, ...] | None = None
    platforms: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class ReleaseDependency:
    slug: str
    version_range: str
    game_id: str | None = None
    optional: bool | None = None


@dataclass(frozen=True, slots=True)
class ZapSplit:
    pubkey: str
    percentage: float


@dataclass(frozen=True, slots=True)
class ReleaseManifest:
    game_id: str
    slug: str
    version: str
    artifacts: tuple[ReleaseArtifact, ...]
    schema_version: str | None = None
    display_version: str | None = None
    release_date: str | None = None
    changelog: tuple[ChangelogEntry, ...] | None = None
    hashes: tuple[HashEntry, ...] | None = None
    compatibility: Compatibility | None = None
    dependencies: tuple[ReleaseDependency, ...] | None = None
    zap_split: tuple[ZapSplit, ...] | None = None

    @property
    def label(self) -> str:
        return self.display_version or self.version

    def to_dict(self) -> StrDict:
        out: StrDict = {}
        if self.schema_version is not None:
            out["schemaVersion"] = self.schema_version
        out["gameId"] = self.game_id
        out["slug"] = self.slug
        out["version"] = self.version
        if self.display_version is not None:
            out["displayVersion"] = self.display_version
        if self.release_date is not None:
            out["releaseDate"] = self.release_date
        if self.changelog is not None:
            out["changelog"] = [{"title": c.title, "body": c.body} for c in self.changelog]
        out["artifacts"] = [a.to_dict() for a in self.artifacts]
        if self.hashes is not None:
            out["hashes"] = [h.to_dict() for h in self.hashes]
        if self.compatibility is not None:
            compat: StrDict = {"gameVersionRange": self.compatibility.game_version_range}
            if self.compatibility.load_order_hints is not None:
                compat["loadOrderHints"] = list(self.compatibility.load_order_hints)
            if self.compatibility.platforms is not None:
                compat["platforms"] = list(self.compatibility.platforms)
            out["compatibility"] = compat
        if self.dependencies is not None:
            deps: list[object] = []
            for dep in self.dependencies:
                d: StrDict = {"slug": dep.slug}
                if dep.game_id is not None:
                    d["gameId"] = dep.game_id
                d["versionRange"] = dep.version_range
                if dep.optional is not None:
                    d["optional"] = dep.optional
                deps.append(d)
            out["dependencies"] = deps
        if self.zap_split is not None:
            out["zapSplit"] = [{"pubkey": z.pubkey, "percentage": z.percentage} for z in self.zap_split]
        return out


def _parse_artifacts(data: Mapping[str, object]) -> Result[tuple[ReleaseArtifact, ...], str]:
    items = as_obj_list(data.get("artifacts"))
    if not items:
        return Err("artifacts must list at least one artifact")
    artifacts: list[ReleaseArtifact] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        if table is None:
            return Err(f"artifacts[{i}] must be an object")
        kind = get_raw_str(table, "type")
        uri = get_raw_str(table, "uri")
        if kind not in ARTIFACT_TYPES:
            return Err(f"artifacts[{i}].type must be one of {', '.join(ARTIFACT_TYPES)}")
        if uri is None:
            return Err(f"artifacts[{i}].uri is required")
        size = get_int(table, "sizeBytes")
        if "sizeBytes" in table and (size is None or size < 0):
            return Err(f"artifacts[{i}].sizeBytes must be a non-negative integer")
        hashes = parse_hashes(table.get("hashes"), f"artifacts[{i}].hashes")
        if isinstance(hashes, Err):
            return hashes
        artifacts.append(ReleaseArtifact(type=kind, uri=uri, size_bytes=size, hashes=hashes.value))
    return Ok(tuple(artifacts))


def _parse_changelog(data: Mapping[str, object]) -> Result[tuple[ChangelogEntry, ...] | None, str]:
    raw = data.get("changelog")
    if raw is None:
        return Ok(None)
    items = as_obj_list(raw)
    if items is None:
        return Err("changelog must be a list")
    entries: list[ChangelogEntry] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        title = get_raw_str(table, "title") if table is not None else None
        body = get_raw_str(table, "body") if table is not None else None
        if title is None or body is None:
            return Err(f"changelog[{i}] needs string title and body")
        entries.append(ChangelogEntry(title=title, body=body))
    return Ok(tuple(entries))


def _parse_compatibility(data: Mapping[str, object]) -> Result[Compatibility | None, str]:
    table = get_table(data, "compatibility")
    if table is None:
        return Ok(None)
    game_range = get_raw_str(table, "gameVersionRange")
    if game_range is None:
        return Err("compatibility.gameVersionRange is required")
    hints = optional_str_tuple(table, "loadOrderHints")
    if isinstance(hints, Err):
        return Err(f"compatibility.{hints.error}")
    platforms = optional_str_tuple(table, "platforms")
    if isinstance(platforms, Err):
        return Err(f"compatibility.{platforms.error}")
    return Ok(
        Compatibility(
            game_version_range=game_range,
            load_order_hints=hints.value,
            platforms=platforms.value,
        )
    )


def _parse_dependencies(
    data: Mapping[str, object],
) -> Result[tuple[ReleaseDependency, ...] | None, str]:
    raw = data.get("dependencies")
    if raw is None:
        return Ok(None)
    items = as_obj_list(raw)
    if items is None:
        return Err("dependencies must be a list")
    deps: list[ReleaseDependency] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        if table is None:
            return Err(f"dependencies[{i}] must be an object")
        slug = get_raw_str(table, "slug")
        version_range = get_raw_str(table, "versionRange")
        if slug is None or version_range is None:
            return Err(f"dependencies[{i}] needs slug and versionRange")
        deps.append(
            ReleaseDependency(
                slug=slug,
                version_range=version_range,
                game_id=get_raw_str(table, "gameId"),
                optional=get_bool(table, "optional"),
            )
        )
    return Ok(tuple(deps))


def _parse_zap_split(data: Mapping[str, object]) -> Result[tuple[ZapSplit, ...] | None, str]:
    raw = data.get("zapSplit")
    if raw is None:
        return Ok(None)
    items = as_obj_list(raw)
    if items is None:
        return Err("zapSplit must be a list")
    splits: list[ZapSplit] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        pubkey = get_raw_str(table, "pubkey") if table is not None else None
        percentage = get_number(table, "percentage") if table is not None else None
        if pubkey is None or percentage is None:
            return Err(f"zapSplit[{i}] needs pubkey and numeric percentage")
        splits.append(ZapSplit(pubkey=pubkey, percentage=percentage))
    return Ok(tuple(splits))


def parse_release_manifest(
    data: Mapping[str, object], path: Path | None = None
) -> Result[ReleaseManifest, ManifestError]:
    def fail(message: str) -> Err[ManifestError]:
        return Err(ManifestError(f"Invalid release manifest: {message}", path=path))

    game_id = get_raw_str(data, "gameId")
    slug = get_raw_str(data, "slug")
    version = get_raw_str(data, "version")
    if not game_id:
        return fail("gameId is required")
    if not slug:
        return fail("slug is required")
    if version is None or not VERSION_RE.match(version):
        return fail(f"version {version!r} is not a semantic version")

    artifacts = _parse_artifacts(data)
    if isinstance(artifacts, Err):
        return fail(artifacts.error)
    changelog = _parse_changelog(data)
    if isinstance(changelog, Err):
        return fail(changelog.error)
    hashes = parse_hashes(data.get("hashes"), "hashes")
    if isinstance(hashes, Err):
        return fail(hashes.error)
    compatibility = _parse_compatibility(data)
    if isinstance(compatibility, Err):
        return fail(compatibility.error)
    dependencies = _parse_dependencies(data)
    if isinstance(dependencies, Err):
        return fail(dependencies.error)
    zap_split = _parse_zap_split(data)
    if isinstance(zap_split, Err):
        return fail(zap_split.error)

    return Ok(
        ReleaseManifest(
            schema_version=get_raw_str(data, "schemaVersion"),
            game_id=game_id,
            slug=slug,
            version=version,
            display_version=get_raw_str(data, "displayVersion"),
            release_date=get_raw_str(data, "releaseDate"),
            changelog=changelog.value,
            artifacts=artifacts.value,
            hashes=hashes.value,
            compatibility=compatibility.value,
            dependencies=dependencies.value,
            zap_split=zap_split.value,
        )
    )
