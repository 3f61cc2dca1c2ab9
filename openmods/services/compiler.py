"""Compile manifests into unsigned addressable events.

Compilation is pure: the same manifest, config, pubkey and timestamp always
produce byte-identical tags and content. Identifier checks run before any tag
is built, slug first.
"""

from __future__ import annotations

from openmods.core.config import OpenModsConfig
from openmods.core.result import Err, Ok, Result
from openmods.manifest.project import ProjectManifest
from openmods.manifest.release import ReleaseManifest
from openmods.nostr.errors import ValidationMismatch
from openmods.nostr.event import KIND_PROJECT, KIND_RELEASE, UnsignedEvent, canonical_json
from openmods.nostr.keys import encode_public
from openmods.nostr.tags import (
    AuthorTag,
    CategoryTag,
    ContentWarningTag,
    CoordinateTag,
    DependsTag,
    DistributionTag,
    GameTag,
    GameVersionRangeTag,
    HashTag,
    LabelTag,
    LicenseTag,
    LinkTag,
    PublishedByTag,
    RelayTag,
    RootHashTag,
    SlugTag,
    SummaryTag,
    Tag,
    TitleTag,
    VersionTag,
    ZapBolt12Tag,
    ZapTag,
    to_wire_tags,
)

__all__ = [
    "canonical_content",
    "check_identifiers",
    "compile_project",
    "compile_release",
    "project_tags",
    "release_tags",
    "resolve_published_by",
]


def check_identifiers(
    manifest: ProjectManifest | ReleaseManifest, config: OpenModsConfig
) -> ValidationMismatch | None:
    if manifest.slug != config.project_slug:
        return ValidationMismatch("slug", manifest.slug, config.project_slug)
    if manifest.game_id != config.game_id:
        return ValidationMismatch("gameId", manifest.game_id, config.game_id)
    return None


def canonical_content(manifest: ProjectManifest | ReleaseManifest) -> str:
    return canonical_json(manifest.to_dict())


def resolve_published_by(config: OpenModsConfig, pubkey: str) -> str:
    """The configured npub, else the npub encoding of ``pubkey``."""
    return config.author_pubkey or encode_public(pubkey)


def project_tags(manifest: ProjectManifest, config: OpenModsConfig) -> list[Tag]:
    tags: list[Tag] = [
        CoordinateTag(f"{manifest.game_id}.{manifest.slug}"),
        GameTag(manifest.game_id),
        SlugTag(manifest.slug),
        TitleTag(manifest.title),
        SummaryTag(manifest.summary),
    ]
    tags.extend(RelayTag(relay) for relay in config.relays)
    tags.extend(LinkTag(kind, url) for kind, url in manifest.links.present())
    tags.extend(
        AuthorTag(
            pubkey=author.pubkey,
            role=author.role,
            display_name=author.display_name,
            payout_fraction=author.zap_split,
        )
        for author in manifest.authors
    )
    tags.extend(CategoryTag(c) for c in manifest.categories or ())
    tags.extend(LabelTag(t) for t in manifest.tags or ())
    tags.extend(ContentWarningTag(w) for w in manifest.content_warnings or ())

    if manifest.zap_config is not None:
        if manifest.zap_config.lnurl:
            tags.append(ZapTag(manifest.zap_config.lnurl))
        if manifest.zap_config.bolt12:
            tags.append(ZapBolt12Tag(manifest.zap_config.bolt12))
    if manifest.license:
        tags.append(LicenseTag(manifest.license))
    for dep in manifest.dependencies or ():
        tags.append(DependsTag(f"{dep.game_id or manifest.game_id}.{dep.slug}", dep.version_range or ""))
    return tags


def release_tags(manifest: ReleaseManifest, published_by: str) -> list[Tag]:
    tags: list[Tag] = [
        CoordinateTag(f"{manifest.game_id}.{manifest.slug}@{manifest.version}"),
        GameTag(manifest.game_id),
        SlugTag(manifest.slug),
        VersionTag(manifest.version),
        PublishedByTag(published_by),
    ]
    for artifact in manifest.artifacts:
        tags.append(DistributionTag(artifact.uri))
        tags.extend(HashTag(h.algorithm, h.value) for h in artifact.hashes or ())
    tags.extend(RootHashTag(h.algorithm, h.value) for h in manifest.hashes or ())
    for dep in manifest.dependencies or ():
        tags.append(DependsTag(f"{dep.game_id or manifest.game_id}.{dep.slug}", dep.version_range))
    if manifest.compatibility is not None and manifest.compatibility.game_version_range:
        tags.append(GameVersionRangeTag(manifest.compatibility.game_version_range))
    return tags


def compile_project(
    manifest: ProjectManifest,
    config: OpenModsConfig,
    pubkey: str,
    created_at: int,
) -> Result[UnsignedEvent, ValidationMismatch]:
    mismatch = check_identifiers(manifest, config)
    if mismatch is not None:
        return Err(mismatch)
    return Ok(
        UnsignedEvent(
            kind=KIND_PROJECT,
            created_at=created_at,
            pubkey=pubkey,
            tags=to_wire_tags(project_tags(manifest, config)),
            content=canonical_content(manifest),
        )
    )


def compile_release(
    manifest: ReleaseManifest,
    config: OpenModsConfig,
    pubkey: str,
    published_by: str,
    created_at: int,
) -> Result[UnsignedEvent, ValidationMismatch]:
    mismatch = check_identifiers(manifest, config)
    if mismatch is not None:
        return Err(mismatch)
    return Ok(
        UnsignedEvent(
            kind=KIND_RELEASE,
            created_at=created_at,
            pubkey=pubkey,
            tags=to_wire_tags(release_tags(manifest, published_by)),
            content=canonical_content(manifest),
        )
    )
