from __future__ import annotations

from openmods.manifest.project import ProjectManifest
from openmods.manifest.release import ReleaseManifest
from openmods.output.console import ConsoleProtocol, Style


def print_project_summary(manifest: ProjectManifest, console: ConsoleProtocol) -> None:
    console.header(f"{manifest.title} ({manifest.game_id}.{manifest.slug})")
    console.print(manifest.summary)
    console.print("")

    console.print("Authors:")
    for author in manifest.authors:
        parts = [author.role, author.pubkey]
        if author.display_name:
            parts.append(f"alias: {author.display_name}")
        if author.zap_split is not None:
            parts.append(f"zap: {author.zap_split * 100:.0f}%")
        console.print(f"  - {' | '.join(parts)}")

    console.print("")
    if manifest.categories:
        console.print(f"Categories: {', '.join(manifest.categories)}")
    if manifest.tags:
        console.print(f"Tags: {', '.join(manifest.tags)}")
    console.print(f"Relay hints: {', '.join(manifest.relay_hints)}", Style.DIM)


def print_release_summary(manifest: ReleaseManifest, console: ConsoleProtocol) -> None:
    console.header(f"{manifest.slug} v{manifest.label}")
    console.print(f"Game: {manifest.game_id}")
    if manifest.release_date:
        console.print(f"Published: {manifest.release_date}")
    if manifest.changelog:
        console.print("Changelog highlights:")
        for entry in manifest.changelog:
            first_line = entry.body.split("\n", 1)[0]
            console.print(f"  - {entry.title}: {first_line}")
    console.print("")

    console.print("Artifacts:")
    for artifact in manifest.artifacts:
        size = f" ({artifact.size_bytes} bytes)" if artifact.size_bytes else ""
        console.print(f"  - [{artifact.type}] {artifact.uri}{size}")

    if manifest.dependencies:
        console.print("")
        console.print("Dependencies:")
        for dep in manifest.dependencies:
            target = f"{dep.game_id or manifest.game_id}.{dep.slug}"
            console.print(f"  - {target} {dep.version_range}".rstrip())
