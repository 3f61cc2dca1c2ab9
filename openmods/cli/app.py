from __future__ import annotations

import typer

from openmods import __version__
from openmods.cli.commands.config_cmd import config_app
from openmods.cli.commands.init_cmd import init
from openmods.cli.commands.project_cmd import project_app
from openmods.cli.commands.release_cmd import release_app
from openmods.cli.commands.zap_cmd import zap_app

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Publish signed OpenMods project and release events to Nostr relays.",
)

app.command()(init)
app.add_typer(config_app, name="config")
app.add_typer(project_app, name="project")
app.add_typer(release_app, name="release")
app.add_typer(zap_app, name="zap")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"openmods {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _root(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Every command runs against openmods.json in the current directory."""


def main() -> None:
    app()
