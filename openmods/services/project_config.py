"""Create and update ``openmods.json``."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from openmods.core.config import (
    DEFAULT_CAPABILITIES,
    DEFAULT_RELAYS,
    KNOWN_CAPABILITIES,
    ConfigError,
    DelegatedSigner,
    OpenModsConfig,
    ReleasePaths,
    SignerConfig,
    ZapConfig,
    config_path,
    load_config,
    save_config,
)
from openmods.core.result import Err, Ok, Result
from openmods.nostr.errors import InvalidEncoding
from openmods.nostr.keys import decode_public
from openmods.output.console import ConsoleProtocol

DEFAULT_GAME_ID = "skyrim-se"


@dataclass(frozen=True, slots=True)
class InitOptions:
    slug: str | None
    game_id: str = DEFAULT_GAME_ID
    relays: Sequence[str] = DEFAULT_RELAYS
    artifacts_dir: str = "artifacts"
    torrents_dir: str = "artifacts/torrents"
    author_pubkey: str | None = None
    zap_lnurl: str | None = None


class ProjectConfigService:
    def __init__(self, *, root: Path, console: ConsoleProtocol) -> None:
        self._root = root
        self._console = console

    @property
    def path(self) -> Path:
        return config_path(self._root)

    def init(self, options: InitOptions) -> Result[OpenModsConfig | None, ConfigError]:
        """Write a fresh config. Ok(None) when one already exists and was left alone."""
        if self.path.exists():
            self._console.warning(
                f"{self.path.name} already exists; aborting to avoid overwriting local data."
            )
            return Ok(None)
        if not options.slug:
            return Err(ConfigError("--slug is required when initializing a project", path=self.path))

        config = OpenModsConfig(
            game_id=options.game_id,
            project_slug=options.slug,
            relays=tuple(dict.fromkeys(options.relays)),
            release=ReleasePaths(artifacts_dir=options.artifacts_dir, torrents_dir=options.torrents_dir),
            author_pubkey=options.author_pubkey,
            zap=ZapConfig(lnurl=options.zap_lnurl) if options.zap_lnurl else None,
        )
        saved = save_config(config, self.path)
        if isinstance(saved, Err):
            return saved
        self._console.success(f"Created {self.path.name} for {config.coordinate}")
        return Ok(config)

    def rotate_author_key(self, npub: str) -> Result[OpenModsConfig, ConfigError | InvalidEncoding]:
        decoded = decode_public(npub)
        if isinstance(decoded, Err):
            return decoded
        return self._update(lambda c: c.with_author_pubkey(npub.strip()), "author pubkey")

    def set_signer(
        self,
        mode: str,
        *,
        relay: str | None = None,
        remote_pubkey: str | None = None,
        capabilities: Sequence[str] = DEFAULT_CAPABILITIES,
    ) -> Result[OpenModsConfig, ConfigError]:
        if mode not in ("local", "delegated"):
            return Err(ConfigError(f"Unknown signer mode: {mode}", hint="Use --mode local or --mode delegated"))
        unknown = [c for c in capabilities if c not in KNOWN_CAPABILITIES]
        if unknown:
            return Err(ConfigError(f"Unsupported capability: {', '.join(unknown)}"))

        if mode == "local":
            signer = SignerConfig(mode="local")
        else:
            if not relay or not remote_pubkey:
                return Err(ConfigError("Delegated mode requires --relay and --remote-pubkey"))
            signer = SignerConfig(
                mode="delegated",
                delegated=DelegatedSigner(
                    relay=relay,
                    remote_pubkey=remote_pubkey,
                    capabilities=tuple(dict.fromkeys(capabilities)),
                ),
            )
        return self._update(lambda c: c.with_signer(signer), "signer configuration")

    def _update(
        self, change: Callable[[OpenModsConfig], OpenModsConfig], what: str
    ) -> Result[OpenModsConfig, ConfigError]:
        loaded = load_config(self.path)
        if isinstance(loaded, Err):
            return loaded
        updated = change(loaded.value)
        saved = save_config(updated, self.path)
        if isinstance(saved, Err):
            return saved
        self._console.success(f"Updated {what} for {updated.coordinate}")
        return Ok(updated)
