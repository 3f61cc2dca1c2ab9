from __future__ import annotations

import asyncio
import json
from pathlib import Path

from openmods.core.config import DelegatedSigner, SignerConfig
from openmods.core.result import Err, Ok
from openmods.manifest.common import ManifestError
from openmods.net.relay import MockRelayTransport, Reject
from openmods.nostr.errors import InvalidEncoding, MissingIdentity, SignatureRequired, ValidationMismatch
from openmods.nostr.event import SignedEvent, verify_event
from openmods.output.console import MockConsole
from openmods.services.prepare import PreparedEvent, PrepareService
from openmods.services.publisher import PublishOptions
from openmods.test._factories import (
    NPUB,
    NSEC,
    OTHER_NPUB,
    OTHER_NSEC,
    PUBKEY,
    make_config,
    write_project_tree,
)

CLOCK = 1_700_000_000.0


def _service(tmp_path: Path, console: MockConsole, **config: object) -> PrepareService:
    cfg = make_config(**config)
    write_project_tree(tmp_path, cfg)
    return PrepareService(config=cfg, console=console, clock=lambda: CLOCK)


def _paths(tmp_path: Path) -> tuple[Path, Path]:
    return tmp_path / "project" / "project.json", tmp_path / "project" / "event-30078.json"


class TestPrepareProject:
    def test_signed(self, tmp_path: Path) -> None:
        console = MockConsole()
        manifest, out = _paths(tmp_path)
        result = _service(tmp_path, console).prepare_project(manifest, out, secret=NSEC)
        assert isinstance(result, Ok)
        prepared = result.value
        assert prepared.signed
        assert isinstance(prepared.event, SignedEvent)
        assert verify_event(prepared.event)
        assert prepared.event.created_at == int(CLOCK)

        on_disk = json.loads(out.read_text(encoding="utf-8"))
        assert on_disk["id"] == prepared.event.id
        assert console.find(f"Signed project event {prepared.event.id}")

    def test_unsigned_with_configured_npub(self, tmp_path: Path) -> None:
        console = MockConsole()
        manifest, out = _paths(tmp_path)
        result = _service(tmp_path, console, author_pubkey=NPUB).prepare_project(manifest, out)
        assert isinstance(result, Ok)
        assert not result.value.signed
        assert result.value.event.pubkey == PUBKEY
        assert "sig" not in json.loads(out.read_text(encoding="utf-8"))

    def test_no_identity(self, tmp_path: Path) -> None:
        manifest, out = _paths(tmp_path)
        result = _service(tmp_path, MockConsole()).prepare_project(manifest, out)
        assert isinstance(result, Err)
        assert isinstance(result.error, MissingIdentity)
        assert not out.exists()

    def test_bad_secret(self, tmp_path: Path) -> None:
        manifest, out = _paths(tmp_path)
        result = _service(tmp_path, MockConsole()).prepare_project(manifest, out, secret=NPUB)
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidEncoding)

    def test_configured_identity_takes_precedence(self, tmp_path: Path) -> None:
        console = MockConsole()
        manifest, out = _paths(tmp_path)
        result = _service(tmp_path, console, author_pubkey=OTHER_NPUB).prepare_project(
            manifest, out, secret=NSEC
        )
        assert isinstance(result, Ok)
        assert isinstance(result.value.event, SignedEvent)
        assert not verify_event(result.value.event)
        assert console.has_warning()
        assert console.find("does not control configured authorPubkey")

    def test_mismatched_config(self, tmp_path: Path) -> None:
        console = MockConsole()
        write_project_tree(tmp_path)
        service = PrepareService(config=make_config(project_slug="other-mod"), console=console)
        manifest, out = _paths(tmp_path)
        result = service.prepare_project(manifest, out, secret=NSEC)
        assert isinstance(result, Err)
        assert isinstance(result.error, ValidationMismatch)
        assert not out.exists()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        service = PrepareService(config=make_config(), console=MockConsole())
        result = service.prepare_project(tmp_path / "nope.json", tmp_path / "out.json", secret=NSEC)
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestError)

    def test_delegated_mode_notice(self, tmp_path: Path) -> None:
        console = MockConsole()
        signer = SignerConfig(
            mode="delegated",
            delegated=DelegatedSigner(relay="wss://signer.example", remote_pubkey=OTHER_NPUB),
        )
        manifest, out = _paths(tmp_path)
        _service(tmp_path, console, signer=signer, author_pubkey=NPUB).prepare_project(manifest, out)
        assert console.find("Signer mode is delegated")

    def test_summary(self, tmp_path: Path) -> None:
        console = MockConsole()
        manifest, out = _paths(tmp_path)
        _service(tmp_path, console).prepare_project(manifest, out, secret=NSEC, summary=True)
        assert console.find("Better Lanterns (skyrim-se.better-lanterns)")


class TestPrepareRelease:
    def test_published_by_derived(self, tmp_path: Path) -> None:
        console = MockConsole()
        service = _service(tmp_path, console)
        out = tmp_path / "artifacts" / "release" / "event-30079.json"
        result = service.prepare_release(tmp_path / "artifacts" / "release" / "manifest.json", out, secret=NSEC)
        assert isinstance(result, Ok)
        assert result.value.event.tag_value("published-by") == NPUB
        assert result.value.event.tag_value("d") == "skyrim-se.better-lanterns@1.2.0"

    def test_published_by_configured(self, tmp_path: Path) -> None:
        service = _service(tmp_path, MockConsole(), author_pubkey=NPUB)
        result = service.prepare_release(
            tmp_path / "artifacts" / "release" / "manifest.json",
            tmp_path / "event.json",
        )
        assert isinstance(result, Ok)
        assert result.value.event.tag_value("published-by") == NPUB


class TestPublishPrepared:
    def _prepared(self, tmp_path: Path, console: MockConsole, **config: object) -> tuple[PrepareService, PreparedEvent]:
        service = _service(tmp_path, console, **config)
        manifest, out = _paths(tmp_path)
        result = service.prepare_project(manifest, out, secret=NSEC)
        assert isinstance(result, Ok)
        return service, result.value

    def test_publish_reports_and_closes(self, tmp_path: Path) -> None:
        console = MockConsole()
        service, prepared = self._prepared(tmp_path, console)
        transport = MockRelayTransport({"wss://relay.two.example": [Reject("blocked")]})

        result = asyncio.run(
            service.publish_prepared(
                prepared,
                transport,
                options=PublishOptions(timeout=1.0, max_attempts=1),
            )
        )
        assert isinstance(result, Ok)
        summary = result.value
        assert summary is not None
        assert (summary.success_count, summary.failure_count) == (1, 1)
        assert transport.close_calls == 1
        assert console.find("Published project event")
        assert console.find("Failed to publish to 1 relay(s).")

    def test_relay_override(self, tmp_path: Path) -> None:
        service, prepared = self._prepared(tmp_path, MockConsole())
        transport = MockRelayTransport()
        asyncio.run(service.publish_prepared(prepared, transport, relays=["wss://custom.example"]))
        assert transport.calls == ["wss://custom.example"]

    def test_unsigned_refused(self, tmp_path: Path) -> None:
        console = MockConsole()
        service = _service(tmp_path, console, author_pubkey=NPUB)
        manifest, out = _paths(tmp_path)
        prepared = service.prepare_project(manifest, out)
        assert isinstance(prepared, Ok)
        transport = MockRelayTransport()

        result = asyncio.run(service.publish_prepared(prepared.value, transport))
        assert result == Err(SignatureRequired("project"))
        assert transport.calls == []
        assert transport.close_calls == 1

    def test_run_publish_blocking(self, tmp_path: Path) -> None:
        service, prepared = self._prepared(tmp_path, MockConsole())
        transport = MockRelayTransport()
        result = service.run_publish(prepared, transport_factory=lambda: transport)
        assert isinstance(result, Ok)
        assert result.value is not None
        assert result.value.success_count == 2
        assert transport.close_calls == 1
