from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from openmods.core.config import OpenModsConfig, config_path, load_config
from openmods.core.errors import ErrorCode
from openmods.core.result import Err
from openmods.output.console import ConsoleProtocol, RichConsole, Style


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: OpenModsConfig | None
    console: ConsoleProtocol

    def require_config(self) -> OpenModsConfig:
        if self.config is None:
            self.console.error(f"Config file not found: {config_path(self.root)}")
            self.console.print("hint: Run: openmods init --slug <slug>", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
        return self.config

    def resolve(self, path: Path) -> Path:
        """Paths given on the command line are relative to the project root."""
        return path if path.is_absolute() else self.root / path


def build_context(*, require_config: bool = True) -> CLIContext:
    """Context for the project in the current directory.

    With ``require_config`` an invalid or missing openmods.json exits with
    CONFIG_ERROR; without it, a missing file yields ``config=None`` but an
    invalid one still exits.
    """
    root = Path.cwd()
    console = RichConsole()
    path = config_path(root)

    config: OpenModsConfig | None = None
    if path.exists() or require_config:
        result = load_config(path)
        if isinstance(result, Err):
            console.error(result.error.message)
            if result.error.hint:
                console.print(f"hint: {result.error.hint}", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
        config = result.value

    return CLIContext(root=root, config=config, console=console)
