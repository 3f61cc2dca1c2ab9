"""Typed configuration loading and access.

This module provides dataclasses for the ``openmods.json`` structure that
lives at the root of a mod project, with validation on load and save.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from .files import write_json
from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_str,
    get_str_list,
    get_table,
    is_url,
)

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CAPABILITIES",
    "DEFAULT_RELAYS",
    "KNOWN_CAPABILITIES",
    "ConfigError",
    "DelegatedSigner",
    "OpenModsConfig",
    "ReleasePaths",
    "SignerConfig",
    "ZapConfig",
    "config_path",
    "load_config",
    "parse_config",
    "save_config",
]

CONFIG_FILENAME = "openmods.json"

DEFAULT_RELAYS = ("wss://relay.damus.io", "wss://nostr.openmods.dev")

KNOWN_CAPABILITIES = ("kind30078", "kind30079", "zap")
DEFAULT_CAPABILITIES = ("kind30078", "kind30079")

NPUB_RE = re.compile(r"^npub1[02-9ac-hj-np-z]{59}$")
SLUG_RE = re.compile(r"^[a-z0-9-]+(\.[a-z0-9-]+)*$")

SignerMode = Literal["local", "delegated"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded, parsed or saved."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class DelegatedSigner:
    """Remote signer reached through a relay (NIP-46 style)."""

    relay: str
    remote_pubkey: str
    capabilities: tuple[str, ...] = DEFAULT_CAPABILITIES


@dataclass(frozen=True, slots=True)
class SignerConfig:
    mode: SignerMode = "local"
    delegated: DelegatedSigner | None = None

    @property
    def is_delegated(self) -> bool:
        return self.mode == "delegated"


@dataclass(frozen=True, slots=True)
class ZapConfig:
    lnurl: str | None = None
    bolt12: str | None = None


@dataclass(frozen=True, slots=True)
class ReleasePaths:
    """Relative paths within the project root."""

    artifacts_dir: str = "artifacts"
    torrents_dir: str = "artifacts/torrents"


@dataclass(frozen=True, slots=True)
class OpenModsConfig:
    """Main configuration container."""

    game_id: str
    project_slug: str
    relays: tuple[str, ...]
    release: ReleasePaths = field(default_factory=ReleasePaths)
    author_pubkey: str | None = None
    zap: ZapConfig | None = None
    signer: SignerConfig | None = None

    @property
    def coordinate(self) -> str:
        return f"{self.game_id}.{self.project_slug}"

    def with_author_pubkey(self, npub: str) -> OpenModsConfig:
        return replace(self, author_pubkey=npub)

    def with_signer(self, signer: SignerConfig) -> OpenModsConfig:
        return replace(self, signer=signer)

    def to_dict(self) -> StrDict:
        """Serialize with the camelCase keys used on disk."""
        out: StrDict = {
            "gameId": self.game_id,
            "projectSlug": self.project_slug,
            "relays": list(self.relays),
        }
        if self.author_pubkey is not None:
            out["authorPubkey"] = self.author_pubkey
        if self.zap is not None:
            zap: StrDict = {}
            if self.zap.lnurl is not None:
                zap["lnurl"] = self.zap.lnurl
            if self.zap.bolt12 is not None:
                zap["bolt12"] = self.zap.bolt12
            out["zap"] = zap
        out["release"] = {
            "artifactsDir": self.release.artifacts_dir,
            "torrentsDir": self.release.torrents_dir,
        }
        if self.signer is not None:
            signer: StrDict = {"mode": self.signer.mode}
            if self.signer.delegated is not None:
                signer["delegated"] = {
                    "relay": self.signer.delegated.relay,
                    "remotePubkey": self.signer.delegated.remote_pubkey,
                    "capabilities": list(self.signer.delegated.capabilities),
                }
            out["signer"] = signer
        return out


def _parse_signer(data: Mapping[str, object]) -> Result[SignerConfig, str]:
    mode = get_str(data, "mode") or "local"
    if mode not in ("local", "delegated"):
        return Err(f"signer.mode must be 'local' or 'delegated', got {mode!r}")

    delegated: DelegatedSigner | None = None
    table = get_table(data, "delegated")
    if table is not None:
        relay = get_str(table, "relay")
        remote = get_str(table, "remotePubkey")
        if relay is None or not is_url(relay):
            return Err("signer.delegated.relay must be a URL")
        if remote is None or not NPUB_RE.match(remote):
            return Err("signer.delegated.remotePubkey: expected delegated signer npub")
        caps = get_str_list(table, "capabilities")
        if caps is None:
            caps = list(DEFAULT_CAPABILITIES)
        unknown = [c for c in caps if c not in KNOWN_CAPABILITIES]
        if unknown:
            return Err(f"unsupported signer capability: {', '.join(unknown)}")
        delegated = DelegatedSigner(relay=relay, remote_pubkey=remote, capabilities=tuple(caps))

    if mode == "delegated" and delegated is None:
        return Err("delegated signer details required when mode is 'delegated'")
    return Ok(SignerConfig(mode="delegated" if mode == "delegated" else "local", delegated=delegated))


def parse_config(
    data: Mapping[str, object], path: Path | None = None
) -> Result[OpenModsConfig, ConfigError]:
    """Validate a parsed ``openmods.json`` mapping and build the typed config."""

    def fail(message: str) -> Err[ConfigError]:
        return Err(ConfigError(f"Invalid config: {message}", path=path))

    game_id = get_str(data, "gameId")
    if game_id is None:
        return fail("gameId is required")

    slug = get_str(data, "projectSlug")
    if slug is None or not SLUG_RE.match(slug):
        return fail("projectSlug must match [a-z0-9-]+(.[a-z0-9-]+)*")

    relays = get_str_list(data, "relays")
    if not relays:
        return fail("relays must be a non-empty list of URLs")
    bad_relays = [r for r in relays if not is_url(r)]
    if bad_relays:
        return fail(f"relay is not a URL: {bad_relays[0]}")

    author = get_str(data, "authorPubkey")
    if author is not None and not NPUB_RE.match(author):
        return fail("authorPubkey: expected a Bech32 npub public key")

    zap: ZapConfig | None = None
    zap_table = get_table(data, "zap")
    if zap_table is not None:
        lnurl = get_str(zap_table, "lnurl")
        if lnurl is not None and not is_url(lnurl):
            return fail("zap.lnurl must be a URL")
        zap = ZapConfig(lnurl=lnurl, bolt12=get_str(zap_table, "bolt12"))

    release_table = get_table(data, "release")
    if release_table is None:
        return fail("release section is required")
    artifacts_dir = get_str(release_table, "artifactsDir")
    torrents_dir = get_str(release_table, "torrentsDir")
    if artifacts_dir is None or torrents_dir is None:
        return fail("release.artifactsDir and release.torrentsDir are required")

    signer: SignerConfig | None = None
    signer_table = get_table(data, "signer")
    if signer_table is not None:
        parsed = _parse_signer(signer_table)
        if isinstance(parsed, Err):
            return fail(parsed.error)
        signer = parsed.value

    return Ok(
        OpenModsConfig(
            game_id=game_id,
            project_slug=slug,
            relays=tuple(relays),
            release=ReleasePaths(artifacts_dir=artifacts_dir, torrents_dir=torrents_dir),
            author_pubkey=author,
            zap=zap,
            signer=signer,
        )
    )


def config_path(root: Path) -> Path:
    """Path to ``openmods.json`` under a project root."""
    return root / CONFIG_FILENAME


def load_config(path: Path) -> Result[OpenModsConfig, ConfigError]:
    """Load and validate configuration from a JSON file.

    Args:
        path: Path to openmods.json

    Returns:
        Ok(OpenModsConfig) on success, Err(ConfigError) on failure
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(
            ConfigError(
                f"Config file not found: {path}",
                path=path,
                hint="Run: openmods init --slug <slug>",
            )
        )
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    try:
        data_obj: object = json.loads(raw)
    except json.JSONDecodeError as e:
        return Err(ConfigError(f"Invalid JSON syntax: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a JSON object", path=path))
    return parse_config(data, path=path)


def save_config(config: OpenModsConfig, path: Path) -> Result[Path, ConfigError]:
    """Validate and write the config as indented JSON with a trailing newline."""
    payload = config.to_dict()
    checked = parse_config(payload, path=path)
    if isinstance(checked, Err):
        return checked

    written = write_json(path, payload)
    if isinstance(written, Err):
        return Err(ConfigError(f"Failed to write config: {written.error.message}", path=path))
    return Ok(path)
