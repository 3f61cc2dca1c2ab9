"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from openmods.core.config import ConfigError
from openmods.core.errors import ErrorCode
from openmods.core.files import FileError
from openmods.manifest.common import ManifestError
from openmods.nostr.errors import (
    AmountOutOfRange,
    EventFormatError,
    InvalidEncoding,
    MissingCoordinate,
    MissingIdentity,
    SignatureRequired,
    ValidationMismatch,
    VerificationFailed,
)
from openmods.output.console import Style

if TYPE_CHECKING:
    from openmods.output.console import ConsoleProtocol

__all__ = ["AppError", "error_exit_code", "print_error"]

type AppError = (
    ConfigError
    | FileError
    | ManifestError
    | ValidationMismatch
    | MissingIdentity
    | InvalidEncoding
    | SignatureRequired
    | EventFormatError
    | MissingCoordinate
    | AmountOutOfRange
    | VerificationFailed
)


def _hint(console: ConsoleProtocol, hint: str | None) -> None:
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def print_error(error: AppError, console: ConsoleProtocol) -> None:
    """Print an error and, when there is one, its hint."""
    match error:
        case ConfigError(message=message, path=path, hint=hint):
            console.error(message)
            if path is not None and str(path) not in message:
                console.print(f"config: {path}", Style.DIM)
            _hint(console, hint)
        case FileError(message=message, hint=hint) | ManifestError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case MissingIdentity(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case InvalidEncoding():
            console.error(error.message)
            _hint(console, "Keys are bech32 strings: nsec1... for secrets, npub1... for public keys")
        case ValidationMismatch() | SignatureRequired():
            console.error(error.message)
            _hint(console, error.hint)
        case MissingCoordinate():
            console.error(error.message)
            _hint(console, "Zap targets must be addressable release events (kind 30079)")
        case AmountOutOfRange() | EventFormatError() | VerificationFailed():
            console.error(error.message)


def error_exit_code(error: AppError) -> int:
    match error:
        case ConfigError() | MissingIdentity() | InvalidEncoding():
            return int(ErrorCode.CONFIG_ERROR)
        case FileError():
            return int(ErrorCode.IO_ERROR)
        case (
            ManifestError()
            | ValidationMismatch()
            | SignatureRequired()
            | EventFormatError()
            | MissingCoordinate()
            | AmountOutOfRange()
            | VerificationFailed()
        ):
            return int(ErrorCode.USER_ERROR)
    return int(ErrorCode.USER_ERROR)
