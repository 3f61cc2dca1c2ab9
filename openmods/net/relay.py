"""Relay transports.

A transport pushes one signed event to one relay and reports whether the
relay accepted it. ``WebsocketRelayPool`` speaks NIP-01 over websockets;
``MockRelayTransport`` replays scripted behaviors for tests.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from dataclasses import dataclass, field
from typing import Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException

from openmods.nostr.event import SignedEvent, canonical_json

__all__ = [
    "Hang",
    "MockRelayTransport",
    "Reject",
    "RelayError",
    "RelayTransport",
    "Resolve",
    "WebsocketRelayPool",
]


class RelayError(Exception):
    """A relay rejected an event or could not be reached."""

    def __init__(self, relay: str, reason: str) -> None:
        super().__init__(reason)
        self.relay = relay
        self.reason = reason

    def __str__(self) -> str:
        return self.reason


class RelayTransport(Protocol):
    async def publish(self, relay: str, event: SignedEvent) -> None:
        """Return once the relay accepts ``event``; raise RelayError otherwise."""
        ...

    async def close(self) -> None: ...


def _parse_frame(raw: str | bytes) -> list[object] | None:
    try:
        frame: object = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(frame, list) or not frame:
        return None
    return frame


async def _close_quietly(conn: ClientConnection) -> None:
    with contextlib.suppress(WebSocketException, OSError):
        await conn.close()


class WebsocketRelayPool:
    """One lazily opened websocket per relay, shared by concurrent publishers.

    Each relay has its own lock, so attempts against one relay are serialized
    while different relays proceed in parallel. A connection that fails or is
    interrupted mid-request is dropped and closed in the background; the next
    attempt reconnects.
    """

    def __init__(self, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout
        self._connections: dict[str, ClientConnection] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._closing: set[asyncio.Task[None]] = set()
        self._closed = False

    def _lock_for(self, relay: str) -> asyncio.Lock:
        lock = self._locks.get(relay)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[relay] = lock
        return lock

    async def _connection(self, relay: str) -> ClientConnection:
        conn = self._connections.get(relay)
        if conn is None:
            conn = await connect(relay, open_timeout=self._open_timeout)
            self._connections[relay] = conn
        return conn

    def _drop(self, relay: str) -> None:
        conn = self._connections.pop(relay, None)
        if conn is not None:
            task = asyncio.create_task(_close_quietly(conn))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    async def publish(self, relay: str, event: SignedEvent) -> None:
        if self._closed:
            raise RelayError(relay, "relay pool is closed")
        async with self._lock_for(relay):
            try:
                conn = await self._connection(relay)
                await conn.send(canonical_json(["EVENT", event.to_dict()]))
                while True:
                    frame = _parse_frame(await conn.recv())
                    if frame is None or frame[0] != "OK":
                        # NOTICE, AUTH and anything unparseable
                        continue
                    if len(frame) < 3 or frame[1] != event.id:
                        continue
                    if frame[2] is True:
                        return
                    reason = frame[3] if len(frame) > 3 and isinstance(frame[3], str) else ""
                    raise RelayError(relay, reason or "event rejected")
            except (WebSocketException, OSError, TimeoutError) as e:
                self._drop(relay)
                raise RelayError(relay, f"connection failed: {e}") from e
            except asyncio.CancelledError:
                self._drop(relay)
                raise

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        conns = list(self._connections.values())
        self._connections.clear()
        await asyncio.gather(*self._closing, *(_close_quietly(c) for c in conns))


@dataclass(frozen=True, slots=True)
class Resolve:
    delay: float = 0.0


@dataclass(frozen=True, slots=True)
class Reject:
    message: str
    delay: float = 0.0


@dataclass(frozen=True, slots=True)
class Hang:
    """Never answer; only cancellation ends the call."""


type Behavior = Resolve | Reject | Hang


@dataclass
class MockRelayTransport:
    """Scripted transport for tests.

    Each relay gets a list of behaviors consumed one per attempt; the last
    behavior repeats once the list runs out. Unscripted relays resolve.

    Usage:
        transport = MockRelayTransport({"wss://a": [Reject("down"), Resolve()]})
    """

    script: dict[str, list[Behavior]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    close_calls: int = 0

    def attempts_for(self, relay: str) -> int:
        return self.calls.count(relay)

    def _next(self, relay: str) -> Behavior:
        steps = self.script.get(relay)
        if not steps:
            return Resolve()
        index = min(self.attempts_for(relay) - 1, len(steps) - 1)
        return steps[index]

    async def publish(self, relay: str, event: SignedEvent) -> None:
        self.calls.append(relay)
        match self._next(relay):
            case Resolve(delay=delay):
                if delay:
                    await asyncio.sleep(delay)
            case Reject(message=message, delay=delay):
                if delay:
                    await asyncio.sleep(delay)
                raise RelayError(relay, message)
            case Hang():
                await asyncio.Event().wait()

    async def close(self) -> None:
        self.close_calls += 1
