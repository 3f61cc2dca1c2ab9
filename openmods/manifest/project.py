"""Project definition manifest (``project/project.json``).

Keys are camelCase on disk. ``to_dict`` emits them in schema order and omits
absent optional fields, which makes the compact JSON of a parsed manifest a
stable event content.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from openmods.core.config import NPUB_RE, SLUG_RE
from openmods.core.result import Err, Ok, Result
from openmods.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_number,
    get_raw_str,
    get_table,
    is_url,
)
from openmods.manifest.common import ManifestError, optional_str_tuple

__all__ = [
    "ProjectAuthor",
    "ProjectDependency",
    "ProjectLinks",
    "ProjectManifest",
    "ZapSettings",
    "parse_project_manifest",
]

_LINK_KEYS = ("homepage", "source", "issues", "support")


@dataclass(frozen=True, slots=True)
class ProjectLinks:
    homepage: str
    source: str | None = None
    issues: str | None = None
    support: str | None = None

    def present(self) -> list[tuple[str, str]]:
        """(kind, url) pairs in the fixed order homepage, source, issues, support."""
        out: list[tuple[str, str]] = []
        for key in _LINK_KEYS:
            value = getattr(self, key)
            if value:
                out.append((key, value))
        return out


@dataclass(frozen=True, slots=True)
class ProjectAuthor:
    pubkey: str
    role: str
    display_name: str | None = None
    zap_split: float | None = None


@dataclass(frozen=True, slots=True)
class ZapSettings:
    lnurl: str | None = None
    bolt12: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectDependency:
    slug: str
    game_id: str | None = None
    version_range: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectManifest:
    game_id: str
    slug: str
    title: str
    summary: str
    links: ProjectLinks
    authors: tuple[ProjectAuthor, ...]
    relay_hints: tuple[str, ...]
    version: str = "1.0.0"
    description: str | None = None
    categories: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None
    zap_config: ZapSettings | None = None
    license: str | None = None
    content_warnings: tuple[str, ...] | None = None
    dependencies: tuple[ProjectDependency, ...] | None = None

    def to_dict(self) -> StrDict:
        out: StrDict = {
            "version": self.version,
            "gameId": self.game_id,
            "slug": self.slug,
            "title": self.title,
            "summary": self.summary,
        }
        if self.description is not None:
            out["description"] = self.description

        links: StrDict = {"homepage": self.links.homepage}
        for key in _LINK_KEYS[1:]:
            value = getattr(self.links, key)
            if value is not None:
                links[key] = value
        out["links"] = links

        authors: list[object] = []
        for author in self.authors:
            entry: StrDict = {"pubkey": author.pubkey, "role": author.role}
            if author.display_name is not None:
                entry["displayName"] = author.display_name
            if author.zap_split is not None:
                entry["zapSplit"] = author.zap_split
            authors.append(entry)
        out["authors"] = authors
        out["relayHints"] = list(self.relay_hints)

        if self.categories is not None:
            out["categories"] = list(self.categories)
        if self.tags is not None:
            out["tags"] = list(self.tags)
        if self.zap_config is not None:
            zap: StrDict = {}
            if self.zap_config.lnurl is not None:
                zap["lnurl"] = self.zap_config.lnurl
            if self.zap_config.bolt12 is not None:
                zap["bolt12"] = self.zap_config.bolt12
            out["zapConfig"] = zap
        if self.license is not None:
            out["license"] = self.license
        if self.content_warnings is not None:
            out["contentWarnings"] = list(self.content_warnings)
        if self.dependencies is not None:
            deps: list[object] = []
            for dep in self.dependencies:
                d: StrDict = {"slug": dep.slug}
                if dep.game_id is not None:
                    d["gameId"] = dep.game_id
                if dep.version_range is not None:
                    d["versionRange"] = dep.version_range
                deps.append(d)
            out["dependencies"] = deps
        return out


def _parse_links(data: Mapping[str, object]) -> Result[ProjectLinks, str]:
    table = get_table(data, "links")
    if table is None:
        return Err("links is required")
    unknown = sorted(set(table) - set(_LINK_KEYS))
    if unknown:
        return Err(f"links has unknown keys: {', '.join(unknown)}")
    values: dict[str, str | None] = {}
    for key in _LINK_KEYS:
        value = get_raw_str(table, key)
        if value is not None and not is_url(value):
            return Err(f"links.{key} must be a URL")
        values[key] = value
    homepage = values["homepage"]
    if homepage is None:
        return Err("links.homepage is required")
    return Ok(
        ProjectLinks(
            homepage=homepage,
            source=values["source"],
            issues=values["issues"],
            support=values["support"],
        )
    )


def _parse_authors(data: Mapping[str, object]) -> Result[tuple[ProjectAuthor, ...], str]:
    items = as_obj_list(data.get("authors"))
    if not items:
        return Err("authors must list at least one author")
    authors: list[ProjectAuthor] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        if table is None:
            return Err(f"authors[{i}] must be an object")
        pubkey = get_raw_str(table, "pubkey")
        role = get_raw_str(table, "role")
        if pubkey is None or not NPUB_RE.match(pubkey):
            return Err(f"authors[{i}].pubkey must be an npub")
        if not role:
            return Err(f"authors[{i}].role is required")
        split = get_number(table, "zapSplit")
        if "zapSplit" in table and (split is None or not 0 <= split <= 1):
            return Err(f"authors[{i}].zapSplit must be between 0 and 1")
        authors.append(
            ProjectAuthor(
                pubkey=pubkey,
                role=role,
                display_name=get_raw_str(table, "displayName"),
                zap_split=split,
            )
        )
    return Ok(tuple(authors))


def _parse_dependencies(
    data: Mapping[str, object],
) -> Result[tuple[ProjectDependency, ...] | None, str]:
    raw = data.get("dependencies")
    if raw is None:
        return Ok(None)
    items = as_obj_list(raw)
    if items is None:
        return Err("dependencies must be a list")
    deps: list[ProjectDependency] = []
    for i, item in enumerate(items):
        table = as_str_dict(item)
        slug = get_raw_str(table, "slug") if table is not None else None
        if table is None or not slug:
            return Err(f"dependencies[{i}].slug is required")
        deps.append(
            ProjectDependency(
                slug=slug,
                game_id=get_raw_str(table, "gameId"),
                version_range=get_raw_str(table, "versionRange"),
            )
        )
    return Ok(tuple(deps))


def parse_project_manifest(
    data: Mapping[str, object], path: Path | None = None
) -> Result[ProjectManifest, ManifestError]:
    """Build a typed project manifest from parsed JSON."""

    def fail(message: str) -> Err[ManifestError]:
        return Err(ManifestError(f"Invalid project manifest: {message}", path=path))

    game_id = get_raw_str(data, "gameId")
    slug = get_raw_str(data, "slug")
    title = get_raw_str(data, "title")
    summary = get_raw_str(data, "summary")
    if not game_id:
        return fail("gameId is required")
    if slug is None or not SLUG_RE.match(slug):
        return fail("slug must match [a-z0-9-]+(.[a-z0-9-]+)*")
    if not title or len(title) > 160:
        return fail("title must be 1-160 characters")
    if not summary or len(summary) > 8192:
        return fail("summary must be 1-8192 characters")

    links = _parse_links(data)
    if isinstance(links, Err):
        return fail(links.error)
    authors = _parse_authors(data)
    if isinstance(authors, Err):
        return fail(authors.error)

    relay_hints = optional_str_tuple(data, "relayHints")
    if isinstance(relay_hints, Err):
        return fail(relay_hints.error)
    if not relay_hints.value or not all(is_url(r) for r in relay_hints.value):
        return fail("relayHints must list at least one relay URL")

    lists: dict[str, tuple[str, ...] | None] = {}
    for key in ("categories", "tags", "contentWarnings"):
        parsed = optional_str_tuple(data, key)
        if isinstance(parsed, Err):
            return fail(parsed.error)
        lists[key] = parsed.value

    zap_config: ZapSettings | None = None
    zap_table = get_table(data, "zapConfig")
    if zap_table is not None:
        lnurl = get_raw_str(zap_table, "lnurl")
        if lnurl is not None and not is_url(lnurl):
            return fail("zapConfig.lnurl must be a URL")
        zap_config = ZapSettings(lnurl=lnurl, bolt12=get_raw_str(zap_table, "bolt12"))

    dependencies = _parse_dependencies(data)
    if isinstance(dependencies, Err):
        return fail(dependencies.error)

    return Ok(
        ProjectManifest(
            version=get_raw_str(data, "version") or "1.0.0",
            game_id=game_id,
            slug=slug,
            title=title,
            summary=summary,
            description=get_raw_str(data, "description"),
            links=links.value,
            authors=authors.value,
            relay_hints=relay_hints.value,
            categories=lists["categories"],
            tags=lists["tags"],
            zap_config=zap_config,
            license=get_raw_str(data, "license"),
            content_warnings=lists["contentWarnings"],
            dependencies=dependencies.value,
        )
    )
