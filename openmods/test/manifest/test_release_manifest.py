from __future__ import annotations

from pathlib import Path

import pytest

from openmods.core.result import Err, Ok
from openmods.manifest.common import HashEntry
from openmods.manifest.hashing import aggregate_root_hash, hash_file_sha256
from openmods.manifest.release import parse_release_manifest
from openmods.test._factories import release_manifest_dict


class TestParseReleaseManifest:
    def test_valid(self) -> None:
        result = parse_release_manifest(release_manifest_dict())
        assert isinstance(result, Ok)
        manifest = result.value
        assert manifest.version == "1.2.0"
        assert manifest.label == "1.2.0"
        assert manifest.artifacts[0].size_bytes == 4
        assert manifest.hashes == (HashEntry("sha256", "cd" * 32),)

    def test_label_prefers_display_version(self) -> None:
        result = parse_release_manifest(release_manifest_dict(displayVersion="1.2 Winter"))
        assert isinstance(result, Ok)
        assert result.value.label == "1.2 Winter"

    @pytest.mark.parametrize("version", ["1.2.0", "v1.2.0", "1.2.0-beta.1"])
    def test_versions_accepted(self, version: str) -> None:
        assert isinstance(parse_release_manifest(release_manifest_dict(version=version)), Ok)

    @pytest.mark.parametrize(
        ("overrides", "fragment"),
        [
            ({"version": "1.2"}, "semantic version"),
            ({"artifacts": []}, "at least one artifact"),
            ({"artifacts": [{"type": "ftp", "uri": "x"}]}, "type must be one of"),
            ({"artifacts": [{"type": "file", "uri": "x", "sizeBytes": -1}]}, "sizeBytes"),
            ({"hashes": [{"algorithm": "sha256"}]}, "hashes[0]"),
            ({"changelog": [{"title": "t"}]}, "changelog[0]"),
            ({"compatibility": {"platforms": ["pc"]}}, "gameVersionRange"),
            ({"dependencies": [{"slug": "skse"}]}, "versionRange"),
            ({"zapSplit": [{"pubkey": "npub1x", "percentage": "half"}]}, "zapSplit[0]"),
        ],
    )
    def test_invalid(self, overrides: dict[str, object], fragment: str) -> None:
        result = parse_release_manifest(release_manifest_dict(**overrides))
        assert isinstance(result, Err)
        assert result.error.message.startswith("Invalid release manifest: ")
        assert fragment in result.error.message

    def test_round_trip_with_optionals(self) -> None:
        data = release_manifest_dict(
            displayVersion="1.2.0",
            releaseDate="2024-05-01T12:00:00.000Z",
            changelog=[{"title": "notes", "body": "Brighter"}],
            compatibility={"gameVersionRange": ">=1.6", "platforms": ["pc"]},
            dependencies=[{"slug": "skse", "gameId": "skyrim-se", "versionRange": ">=2.2", "optional": True}],
            zapSplit=[{"pubkey": "npub1x", "percentage": 50}],
        )
        first = parse_release_manifest(data)
        assert isinstance(first, Ok)
        assert first.value.to_dict() == data
        assert parse_release_manifest(first.value.to_dict()) == first

    def test_key_order(self) -> None:
        data = release_manifest_dict(displayVersion="1.2.0", releaseDate="2024-05-01")
        result = parse_release_manifest(data)
        assert isinstance(result, Ok)
        assert list(result.value.to_dict()) == [
            "schemaVersion",
            "gameId",
            "slug",
            "version",
            "displayVersion",
            "releaseDate",
            "artifacts",
            "hashes",
        ]


class TestHashing:
    def test_hash_file(self, tmp_path: Path) -> None:
        path = tmp_path / "a.bin"
        path.write_bytes(b"abc")
        assert hash_file_sha256(path) == HashEntry(
            "sha256", "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_root_hash_over_hex_values(self) -> None:
        import hashlib

        entries = [HashEntry("sha256", "aa"), HashEntry("sha256", "bb")]
        root = aggregate_root_hash(entries)
        assert root == HashEntry("sha256", hashlib.sha256(b"aabb").hexdigest())

    def test_root_hash_order_sensitive(self) -> None:
        a, b = HashEntry("sha256", "aa"), HashEntry("sha256", "bb")
        assert aggregate_root_hash([a, b]) != aggregate_root_hash([b, a])

    def test_no_hashes(self) -> None:
        assert aggregate_root_hash([]) is None
