"""End-to-end command tests through typer's CliRunner in a temporary project."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from openmods import __version__
from openmods.cli.app import app
from openmods.core.errors import ErrorCode
from openmods.net.http import MockHttpClient
from openmods.net.relay import MockRelayTransport, Reject
from openmods.test._factories import NPUB, NSEC, OTHER_NPUB, OTHER_NSEC, write_project_tree

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.delenv("OPENMODS_NSEC", raising=False)
    monkeypatch.delenv("OPENMODS_ZAP_RECEIVER_NSEC", raising=False)
    return tmp_path


@pytest.fixture
def configured(project: Path) -> Path:
    write_project_tree(project)
    return project


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestInit:
    def test_writes_config(self, project: Path) -> None:
        result = runner.invoke(
            app,
            ["init", "--slug", "better-lanterns", "--relay", "wss://r.example", "--author-pubkey", NPUB],
        )
        assert result.exit_code == 0, result.output
        data = json.loads((project / "openmods.json").read_text(encoding="utf-8"))
        assert data["projectSlug"] == "better-lanterns"
        assert data["relays"] == ["wss://r.example"]
        assert data["authorPubkey"] == NPUB

    def test_requires_slug(self, project: Path) -> None:
        result = runner.invoke(app, ["init"])
        assert result.exit_code == ErrorCode.CONFIG_ERROR
        assert "--slug is required" in result.output

    def test_existing_config(self, configured: Path) -> None:
        result = runner.invoke(app, ["init", "--slug", "other"])
        assert result.exit_code == 0
        assert "already exists" in result.output


class TestConfig:
    def test_rotate_author_key(self, configured: Path) -> None:
        result = runner.invoke(app, ["config", "rotate-author-key", OTHER_NPUB])
        assert result.exit_code == 0, result.output
        data = json.loads((configured / "openmods.json").read_text(encoding="utf-8"))
        assert data["authorPubkey"] == OTHER_NPUB

    def test_set_signer_delegated(self, configured: Path) -> None:
        result = runner.invoke(
            app,
            [
                "config",
                "set-signer",
                "--mode",
                "delegated",
                "--relay",
                "wss://signer.example",
                "--remote-pubkey",
                OTHER_NPUB,
                "--capability",
                "zap",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads((configured / "openmods.json").read_text(encoding="utf-8"))
        assert data["signer"]["delegated"]["capabilities"] == ["zap"]

    def test_missing_config(self, project: Path) -> None:
        result = runner.invoke(app, ["config", "rotate-author-key", NPUB])
        assert result.exit_code == ErrorCode.CONFIG_ERROR


class TestProjectPublish:
    def test_dry_run_with_env_secret(self, configured: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENMODS_NSEC", NSEC)
        result = runner.invoke(app, ["project", "publish"])
        assert result.exit_code == 0, result.output
        assert "dry-run only" in result.output
        event = json.loads((configured / "project" / "event-30078.json").read_text(encoding="utf-8"))
        assert event["kind"] == 30078
        assert "sig" in event

    def test_missing_config(self, project: Path) -> None:
        result = runner.invoke(app, ["project", "publish", "--secret", NSEC])
        assert result.exit_code == ErrorCode.CONFIG_ERROR
        assert "Config file not found" in result.output

    def test_no_identity(self, configured: Path) -> None:
        result = runner.invoke(app, ["project", "publish"])
        assert result.exit_code == ErrorCode.CONFIG_ERROR
        assert "Unable to derive pubkey" in result.output

    def test_push(self, configured: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import openmods.cli.commands._publish as publish_mod

        transport = MockRelayTransport()
        monkeypatch.setattr(publish_mod, "WebsocketRelayPool", lambda: transport)
        result = runner.invoke(app, ["project", "publish", "--secret", NSEC, "--publish"])
        assert result.exit_code == 0, result.output
        assert "to 2 relay(s)" in result.output
        assert transport.close_calls == 1

    def test_push_all_failed(self, configured: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import openmods.cli.commands._publish as publish_mod

        transport = MockRelayTransport(
            {
                "wss://relay.one.example": [Reject("blocked")],
                "wss://relay.two.example": [Reject("blocked")],
            }
        )
        monkeypatch.setattr(publish_mod, "WebsocketRelayPool", lambda: transport)
        result = runner.invoke(
            app,
            ["project", "publish", "--secret", NSEC, "--publish", "--max-attempts", "2", "--backoff", "0"],
        )
        assert result.exit_code == ErrorCode.NETWORK_ERROR
        assert transport.attempts_for("wss://relay.one.example") == 2

    def test_push_unsigned_refused(self, configured: Path) -> None:
        runner.invoke(app, ["config", "rotate-author-key", NPUB])
        result = runner.invoke(app, ["project", "publish", "--publish"])
        assert result.exit_code == ErrorCode.USER_ERROR
        assert "Cannot publish unsigned project event" in result.output

    def test_inspect(self, configured: Path) -> None:
        result = runner.invoke(app, ["project", "inspect"])
        assert result.exit_code == 0
        assert "Better Lanterns" in result.output


class TestScaffold:
    def test_project_scaffold_then_publish(self, project: Path) -> None:
        assert runner.invoke(app, ["init", "--slug", "better-lanterns", "--author-pubkey", NPUB]).exit_code == 0

        scaffolded = runner.invoke(app, ["project", "scaffold"])
        assert scaffolded.exit_code == 0, scaffolded.output
        assert (project / "project" / "project.json").exists()

        published = runner.invoke(app, ["project", "publish", "--secret", NSEC])
        assert published.exit_code == 0, published.output

    def test_project_scaffold_requires_author(self, project: Path) -> None:
        assert runner.invoke(app, ["init", "--slug", "better-lanterns"]).exit_code == 0
        result = runner.invoke(app, ["project", "scaffold"])
        assert result.exit_code == ErrorCode.CONFIG_ERROR
        assert "missing authorPubkey" in result.output

    def test_release_scaffold_respects_force(self, configured: Path) -> None:
        manifest = configured / "artifacts" / "release" / "manifest.json"
        before = manifest.read_text(encoding="utf-8")

        kept = runner.invoke(app, ["release", "scaffold", "--version", "2.0.0"])
        assert kept.exit_code == 0
        assert "use --force" in kept.output
        assert manifest.read_text(encoding="utf-8") == before

        forced = runner.invoke(app, ["release", "scaffold", "--version", "2.0.0", "--force"])
        assert forced.exit_code == 0, forced.output
        assert json.loads(manifest.read_text(encoding="utf-8"))["version"] == "2.0.0"
        assert (configured / "artifacts" / "changelog.md").exists()


class TestRelease:
    def test_build_publish_verify(self, configured: Path) -> None:
        (configured / "dist").mkdir()
        (configured / "dist" / "better-lanterns.zip").write_bytes(b"zip-bytes")

        built = runner.invoke(
            app, ["release", "build", "--artifact", "dist/better-lanterns.zip", "--version", "1.3.0"]
        )
        assert built.exit_code == 0, built.output
        manifest = json.loads(
            (configured / "artifacts" / "release" / "manifest.json").read_text(encoding="utf-8")
        )
        assert manifest["version"] == "1.3.0"
        assert manifest["artifacts"][0]["sizeBytes"] == len(b"zip-bytes")

        published = runner.invoke(app, ["release", "publish", "--secret", NSEC])
        assert published.exit_code == 0, published.output

        verified = runner.invoke(app, ["release", "verify"])
        assert verified.exit_code == 0, verified.output
        assert "Signature verified" in verified.output
        assert "Event content matches manifest on disk" in verified.output

    def test_verify_detects_drift(self, configured: Path) -> None:
        assert runner.invoke(app, ["release", "publish", "--secret", NSEC]).exit_code == 0
        path = configured / "artifacts" / "release" / "manifest.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["displayVersion"] = "changed"
        path.write_text(json.dumps(data), encoding="utf-8")

        result = runner.invoke(app, ["release", "verify"])
        assert result.exit_code == ErrorCode.USER_ERROR
        assert "does not match event content" in result.output

        skipped = runner.invoke(app, ["release", "verify", "--skip-manifest"])
        assert skipped.exit_code == 0

    def test_manifest_mismatch(self, configured: Path) -> None:
        path = configured / "artifacts" / "release" / "manifest.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["slug"] = "other-mod"
        path.write_text(json.dumps(data), encoding="utf-8")
        result = runner.invoke(app, ["release", "publish", "--secret", NSEC])
        assert result.exit_code == ErrorCode.USER_ERROR
        assert "Manifest slug other-mod does not match config better-lanterns" in result.output

    def test_build_without_artifacts(self, configured: Path) -> None:
        result = runner.invoke(app, ["release", "build"])
        assert result.exit_code == ErrorCode.USER_ERROR

    def test_inspect(self, configured: Path) -> None:
        result = runner.invoke(app, ["release", "inspect"])
        assert result.exit_code == 0
        assert "better-lanterns v1.2.0" in result.output


class TestZapSimulate:
    def test_request_and_receipt(self, configured: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import openmods.cli.commands.zap_cmd as zap_cmd

        assert runner.invoke(app, ["release", "publish", "--secret", NSEC]).exit_code == 0
        http = MockHttpClient()
        http.set_json(
            "https://pay.example/.well-known/lnurlp/lumen",
            {"callback": "https://pay.example/cb", "metadata": '[["text/plain","Zap better-lanterns"]]'},
        )
        monkeypatch.setattr(zap_cmd, "RealHttpClient", lambda: http)
        monkeypatch.setenv("OPENMODS_ZAP_RECEIVER_NSEC", NSEC)

        result = runner.invoke(
            app,
            [
                "zap",
                "simulate",
                "--lnurl",
                "lumen@pay.example",
                "--amount",
                "21",
                "--secret",
                OTHER_NSEC,
                "--receiver",
                NPUB,
                "--receipt-out",
                "artifacts/zap/receipt-9735.json",
            ],
        )
        assert result.exit_code == 0, result.output
        request = json.loads((configured / "artifacts" / "zap" / "request-9734.json").read_text(encoding="utf-8"))
        receipt = json.loads((configured / "artifacts" / "zap" / "receipt-9735.json").read_text(encoding="utf-8"))
        assert request["kind"] == 9734
        assert receipt["kind"] == 9735
        assert "sig" in receipt

    def test_requires_lnurl(self, configured: Path) -> None:
        assert runner.invoke(app, ["release", "publish", "--secret", NSEC]).exit_code == 0
        result = runner.invoke(app, ["zap", "simulate", "--secret", OTHER_NSEC])
        assert result.exit_code == ErrorCode.CONFIG_ERROR
        assert "LNURL is required" in result.output

    def test_missing_release_event(self, configured: Path) -> None:
        result = runner.invoke(app, ["zap", "simulate", "--lnurl", "https://pay.example/x"])
        assert result.exit_code == ErrorCode.IO_ERROR
