"""Starter manifests generated from openmods.json."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from openmods.core.config import ConfigError, OpenModsConfig
from openmods.core.files import FileError, atomic_write_text, write_json
from openmods.core.result import Err, Ok, Result
from openmods.manifest.common import ManifestError
from openmods.manifest.project import parse_project_manifest
from openmods.manifest.release import parse_release_manifest
from openmods.output.console import ConsoleProtocol
from openmods.services.release_build import SCHEMA_VERSION, iso_now

__all__ = ["ScaffoldService", "CHANGELOG_PLACEHOLDER"]

type ScaffoldError = ConfigError | FileError | ManifestError

CHANGELOG_PLACEHOLDER = "# Changelog\n\n- Describe the changes introduced in this release.\n"


@dataclass(frozen=True, slots=True)
class ScaffoldService:
    config: OpenModsConfig
    root: Path
    console: ConsoleProtocol
    now: Callable[[], str] = iso_now

    def _exists(self, path: Path, what: str, force: bool) -> bool:
        if force or not path.exists():
            return False
        self.console.warning(f"{what} already exists at {path}; use --force to regenerate.")
        return True

    def project(self, out: Path, *, force: bool = False) -> Result[Path | None, ScaffoldError]:
        """Write a project manifest skeleton. Ok(None) when ``out`` was left alone."""
        config = self.config
        if not config.author_pubkey:
            return Err(
                ConfigError(
                    "openmods.json is missing authorPubkey",
                    hint="Run: openmods config rotate-author-key <npub>",
                )
            )
        if self._exists(out, "Project manifest", force):
            return Ok(None)

        data: dict[str, object] = {
            "version": "1.0.0",
            "gameId": config.game_id,
            "slug": config.project_slug,
            "title": "Replace with project title",
            "summary": "Replace with a concise description of the project",
            "description": "",
            "links": {"homepage": "https://example.com/your-project"},
            "authors": [
                {"pubkey": config.author_pubkey, "role": "maintainer", "displayName": "Maintainer name"}
            ],
            "relayHints": list(config.relays),
            "categories": [],
            "tags": [],
            "contentWarnings": [],
        }
        if config.zap is not None:
            zap = {k: v for k, v in (("lnurl", config.zap.lnurl), ("bolt12", config.zap.bolt12)) if v}
            data["zapConfig"] = zap

        manifest = parse_project_manifest(data, out)
        if isinstance(manifest, Err):
            return manifest
        written = write_json(out, manifest.value.to_dict())
        if isinstance(written, Err):
            return written
        self.console.success(f"Project manifest scaffolded at {out}")
        return Ok(out)

    def release(
        self, out: Path, *, version: str = "0.1.0", force: bool = False
    ) -> Result[Path | None, ScaffoldError]:
        """Write a release manifest skeleton plus a changelog stub if none exists."""
        config = self.config
        if self._exists(out, "Release manifest", force):
            return Ok(None)

        changelog = self.root / config.release.artifacts_dir / "changelog.md"
        if not changelog.exists():
            try:
                atomic_write_text(changelog, CHANGELOG_PLACEHOLDER)
            except OSError as e:
                return Err(FileError(f"failed to write {changelog}: {e}", path=changelog))

        torrent = f"{config.release.torrents_dir}/{config.project_slug}-v{version}.torrent"
        data: dict[str, object] = {
            "schemaVersion": SCHEMA_VERSION,
            "gameId": config.game_id,
            "slug": config.project_slug,
            "version": version,
            "displayVersion": version,
            "releaseDate": self.now(),
            "changelog": [
                {"title": "notes", "body": f"Refer to {config.release.artifacts_dir}/changelog.md for release details."}
            ],
            "artifacts": [{"type": "torrent", "uri": torrent}],
        }
        manifest = parse_release_manifest(data, out)
        if isinstance(manifest, Err):
            return manifest
        written = write_json(out, manifest.value.to_dict())
        if isinstance(written, Err):
            return written
        self.console.success(f"Release manifest scaffolded at {out}")
        return Ok(out)
