"""Process exit codes shared by every openmods command."""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Stable exit status; release CI jobs branch on these values."""

    OK = 0
    # Manifest/config mismatch, bad amount, unsigned event on --publish
    USER_ERROR = 1
    # openmods.json missing or invalid, unusable key material
    CONFIG_ERROR = 2
    # No relay accepted the event
    NETWORK_ERROR = 4
    IO_ERROR = 5
