"""Console output for services and commands.

Services never print directly: prepared events, relay outcomes and zap
summaries go through ``ConsoleProtocol``. The CLI hands them a
``RichConsole``; tests hand them a ``MockConsole`` and assert on what was
recorded.

Errors and warnings are diagnostics and go to stderr, so an event JSON
redirected from stdout is never mixed with them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    DEFAULT = "default"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DIM = "dim"
    HEADER = "header"

    def __str__(self) -> str:
        return self.value


# Rich style and the label printed before the message, per level.
_RICH_STYLES: dict[Style, str] = {
    Style.DEFAULT: "",
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.HEADER: "blue bold",
}
_LABELS: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
}
_STDERR = frozenset({Style.ERROR, Style.WARNING})


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """ConsoleProtocol rendered with Rich.

    Messages are printed with ``markup=False``: relay replies, manifest titles
    and LNURL metadata routinely contain square brackets.
    """

    def __init__(self) -> None:
        # Rich is only needed once a command actually runs
        from rich.console import Console

        self._out = Console(highlight=False)
        self._err = Console(stderr=True, highlight=False)

    def _labelled(self, message: str, level: Style) -> None:
        target = self._err if level in _STDERR else self._out
        target.print(f"[{_RICH_STYLES[level]}]{_LABELS[level]}[/] ", end="")
        target.print(message, markup=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._out.print(message, style=_RICH_STYLES[style] or None, markup=False)

    def success(self, message: str) -> None:
        self._labelled(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._labelled(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._labelled(message, Style.WARNING)

    def info(self, message: str) -> None:
        self.print(message, Style.INFO)

    def header(self, message: str) -> None:
        self._out.print()
        self.print(message, Style.HEADER)


@dataclass(frozen=True, slots=True)
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Records every line with its style; labels are kept in the message."""

    outputs: list[OutputRecord] = field(default_factory=list)

    def _labelled(self, message: str, level: Style) -> None:
        self.outputs.append(OutputRecord(f"{_LABELS[level]} {message}", level))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._labelled(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._labelled(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._labelled(message, Style.WARNING)

    def info(self, message: str) -> None:
        self.print(message, Style.INFO)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style is Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style is Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
