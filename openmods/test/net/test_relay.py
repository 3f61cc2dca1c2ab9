"""Transport tests: scripted mock behaviors and the websocket pool against a local relay."""

from __future__ import annotations

import asyncio
import json

import pytest
from websockets.asyncio.server import ServerConnection, serve

from openmods.net.cancel import CancellationContext
from openmods.net.relay import Hang, MockRelayTransport, Reject, RelayError, Resolve, WebsocketRelayPool
from openmods.nostr.event import KIND_PROJECT, SignedEvent, UnsignedEvent, sign_event
from openmods.test._factories import PUBKEY, SECRET


def _signed() -> SignedEvent:
    return sign_event(
        UnsignedEvent(kind=KIND_PROJECT, created_at=1, pubkey=PUBKEY, tags=(("d", "x"),), content="{}"),
        SECRET,
    )


class TestMockRelayTransport:
    def test_script_consumed_then_last_repeats(self) -> None:
        transport = MockRelayTransport({"wss://a": [Reject("down"), Resolve()]})
        event = _signed()

        async def run() -> None:
            with pytest.raises(RelayError, match="down"):
                await transport.publish("wss://a", event)
            await transport.publish("wss://a", event)
            await transport.publish("wss://a", event)

        asyncio.run(run())
        assert transport.attempts_for("wss://a") == 3

    def test_unscripted_relay_resolves(self) -> None:
        transport = MockRelayTransport()
        asyncio.run(transport.publish("wss://b", _signed()))
        assert transport.calls == ["wss://b"]

    def test_hang_ends_only_on_cancel(self) -> None:
        transport = MockRelayTransport({"wss://a": [Hang()]})

        async def run() -> None:
            with pytest.raises(TimeoutError):
                await asyncio.wait_for(transport.publish("wss://a", _signed()), timeout=0.02)

        asyncio.run(run())

    def test_close_counted(self) -> None:
        transport = MockRelayTransport()
        asyncio.run(transport.close())
        assert transport.close_calls == 1


class TestCancellationContext:
    def test_sleep_elapses(self) -> None:
        async def run() -> bool:
            return await CancellationContext().sleep(0.01)

        assert asyncio.run(run()) is False

    def test_sleep_interrupted(self) -> None:
        async def run() -> tuple[bool, float]:
            cancel = CancellationContext()
            loop = asyncio.get_running_loop()
            loop.call_later(0.01, cancel.cancel)
            started = loop.time()
            interrupted = await cancel.sleep(5)
            return interrupted, loop.time() - started

        interrupted, elapsed = asyncio.run(run())
        assert interrupted is True
        assert elapsed < 1

    def test_already_cancelled(self) -> None:
        async def run() -> bool:
            cancel = CancellationContext()
            cancel.cancel()
            return await cancel.sleep(5)

        assert asyncio.run(run()) is True


async def _relay(ws: ServerConnection) -> None:
    """Minimal NIP-01 relay: NOTICE first, then accept unless content says reject."""
    async for raw in ws:
        frame = json.loads(raw)
        event = frame[1]
        await ws.send(json.dumps(["NOTICE", "hello"]))
        accepted = event["content"] != "reject"
        await ws.send(json.dumps(["OK", event["id"], accepted, "" if accepted else "blocked: spam"]))


class TestWebsocketRelayPool:
    def test_accepts_and_rejects(self) -> None:
        async def run() -> None:
            async with serve(_relay, "127.0.0.1", 0) as server:
                port = next(iter(server.sockets)).getsockname()[1]
                url = f"ws://127.0.0.1:{port}"
                pool = WebsocketRelayPool(open_timeout=2)
                try:
                    await pool.publish(url, _signed())
                    rejected = sign_event(
                        UnsignedEvent(kind=KIND_PROJECT, created_at=2, pubkey=PUBKEY, tags=(), content="reject"),
                        SECRET,
                    )
                    with pytest.raises(RelayError, match="blocked: spam"):
                        await pool.publish(url, rejected)
                finally:
                    await pool.close()

        asyncio.run(run())

    def test_unreachable_relay(self) -> None:
        async def run() -> None:
            pool = WebsocketRelayPool(open_timeout=1)
            try:
                with pytest.raises(RelayError, match="connection failed"):
                    await pool.publish("ws://127.0.0.1:9", _signed())
            finally:
                await pool.close()

        asyncio.run(run())

    def test_closed_pool_refuses(self) -> None:
        async def run() -> None:
            pool = WebsocketRelayPool()
            await pool.close()
            await pool.close()
            with pytest.raises(RelayError, match="closed"):
                await pool.publish("ws://127.0.0.1:9", _signed())

        asyncio.run(run())

    def test_dropped_connections_do_not_accumulate(self) -> None:
        async def hang_up(ws: ServerConnection) -> None:
            await ws.recv()
            await ws.close()

        async def run() -> None:
            async with serve(hang_up, "127.0.0.1", 0) as server:
                port = next(iter(server.sockets)).getsockname()[1]
                url = f"ws://127.0.0.1:{port}"
                pool = WebsocketRelayPool(open_timeout=2)
                try:
                    for _ in range(5):
                        with pytest.raises(RelayError, match="connection failed"):
                            await pool.publish(url, _signed())
                    for _ in range(100):
                        if not pool._closing:
                            break
                        await asyncio.sleep(0.01)
                    assert not pool._closing
                finally:
                    await pool.close()

        asyncio.run(run())
