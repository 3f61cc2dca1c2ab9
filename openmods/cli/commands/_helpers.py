"""Turn service Results into process exits."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from openmods.core.result import Err, Result
from openmods.output.errors import AppError, error_exit_code, print_error

if TYPE_CHECKING:
    from openmods.cli.context import CLIContext


def exit_on_error[T](result: Result[T, AppError], ctx: CLIContext) -> T:
    """Unwrap ``result`` or report the error on ``ctx.console`` and exit with its code."""
    if isinstance(result, Err):
        print_error(result.error, ctx.console)
        exit_with_code(error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)
