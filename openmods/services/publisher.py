"""Concurrent publishing of one signed event to many relays.

Every unique relay runs its own attempt loop as a separate task:

    pending -> attempting -> SUCCEEDED
                          -> retrying -> attempting ...
                          -> EXHAUSTED   (last attempt failed)
                          -> ABORTED     (cancellation observed)

The intermediate states are the position of that task in its loop and stay
local to it; only the terminal state leaves, in ``PublishOutcome.state``.

Attempts against one relay are strictly sequential. Each attempt races the
transport call against the per-attempt timeout and the shared cancellation
context. Failures are recorded in the outcome; ``publish`` never raises for a
relay that misbehaves.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from openmods.net.cancel import CancellationContext
from openmods.net.relay import RelayError, RelayTransport
from openmods.nostr.event import SignedEvent
from openmods.output.console import ConsoleProtocol, Style

__all__ = [
    "ABORTED",
    "EndpointState",
    "PublishOptions",
    "PublishOutcome",
    "RelayPublisher",
    "dedupe_relays",
]

ABORTED = "aborted"


class EndpointState(StrEnum):
    """Terminal state of one relay."""

    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Per-relay retry policy. Times are in seconds."""

    timeout: float = 7.0
    max_attempts: int = 3
    backoff: float = 0.5

    def normalized(self) -> PublishOptions:
        return PublishOptions(
            timeout=self.timeout,
            max_attempts=max(1, int(self.max_attempts)),
            backoff=max(0.0, float(self.backoff)),
        )


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    relay: str
    status: Literal["ok", "error"]
    attempts: int
    elapsed: float
    error: str | None
    state: EndpointState

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def dedupe_relays(relays: Iterable[str]) -> list[str]:
    """Exact-match dedup, first occurrence order kept."""
    return list(dict.fromkeys(relays))


@dataclass(frozen=True, slots=True)
class _Succeeded:
    pass


@dataclass(frozen=True, slots=True)
class _Failed:
    reason: str


@dataclass(frozen=True, slots=True)
class _Aborted:
    pass


type _AttemptResult = _Succeeded | _Failed | _Aborted


def _describe(exc: BaseException) -> str:
    if isinstance(exc, RelayError):
        return str(exc)
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class RelayPublisher:
    """Publish events through an injected transport.

    The publisher does not own connection setup; it only closes the transport
    when ``close`` is called.
    """

    def __init__(self, transport: RelayTransport, console: ConsoleProtocol | None = None) -> None:
        self._transport = transport
        self._console = console
        self._closed = False

    async def publish(
        self,
        event: SignedEvent,
        relays: Sequence[str],
        options: PublishOptions | None = None,
        cancel: CancellationContext | None = None,
    ) -> list[PublishOutcome]:
        targets = dedupe_relays(relays)
        if not targets:
            return []
        opts = (options or PublishOptions()).normalized()
        ctx = cancel if cancel is not None else CancellationContext()
        results = await asyncio.gather(*(self._publish_one(r, event, opts, ctx) for r in targets))
        return list(results)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._transport.close()

    async def _publish_one(
        self,
        relay: str,
        event: SignedEvent,
        options: PublishOptions,
        cancel: CancellationContext,
    ) -> PublishOutcome:
        attempt = 0
        started: float | None = None
        last_error: str | None = None

        def outcome(final: EndpointState, error: str | None) -> PublishOutcome:
            elapsed = 0.0 if started is None else time.monotonic() - started
            return PublishOutcome(
                relay=relay,
                status="ok" if final is EndpointState.SUCCEEDED else "error",
                attempts=attempt,
                elapsed=elapsed,
                error=error,
                state=final,
            )

        while attempt < options.max_attempts:
            if cancel.cancelled:
                return outcome(EndpointState.ABORTED, ABORTED)

            attempt += 1
            if started is None:
                started = time.monotonic()

            match await self._attempt(relay, event, options.timeout, cancel):
                case _Succeeded():
                    return outcome(EndpointState.SUCCEEDED, None)
                case _Aborted():
                    return outcome(EndpointState.ABORTED, ABORTED)
                case _Failed(reason=reason):
                    last_error = reason

            if attempt >= options.max_attempts:
                break

            delay = options.backoff * attempt
            if self._console is not None:
                self._console.print(
                    f"  {relay}: attempt {attempt} failed ({last_error}); retrying in {delay:g}s",
                    Style.DIM,
                )
            if await cancel.sleep(delay):
                return outcome(EndpointState.ABORTED, ABORTED)

        return outcome(EndpointState.EXHAUSTED, last_error)

    async def _attempt(
        self,
        relay: str,
        event: SignedEvent,
        timeout: float,
        cancel: CancellationContext,
    ) -> _AttemptResult:
        publish_task = asyncio.ensure_future(self._transport.publish(relay, event))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {publish_task, cancel_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [t for t in (publish_task, cancel_task) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if publish_task in done:
            if publish_task.cancelled():
                return _Failed("publish cancelled by transport")
            exc = publish_task.exception()
            if exc is None:
                return _Succeeded()
            return _Failed(_describe(exc))
        if cancel_task in done:
            return _Aborted()
        return _Failed(f"publish timed out after {timeout:g}s")
