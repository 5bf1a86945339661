"""Tests for the websocket connection hub"""
import asyncio
import time

from pzem_monitor.notifier import ConnectionHub


class FakeSocket:
    def __init__(self, fail=False, delay=0.0, close_fails=False):
        self.sent = []
        self.accepted = False
        self.closed = False
        self.fail = fail
        self.delay = delay
        self.close_fails = close_fails

    async def accept(self):
        self.accepted = True

    async def send_json(self, obj):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(obj)

    async def close(self):
        if self.close_fails:
            raise RuntimeError("already closed")
        self.closed = True


def test_emit_reaches_all_subscribers():
    async def scenario():
        hub = ConnectionHub()
        a, b = FakeSocket(), FakeSocket()
        await hub.connect(a)
        await hub.connect(b)
        delivered = await hub.emit("new-measurement", {"id": 1})
        return hub, a, b, delivered

    hub, a, b, delivered = asyncio.run(scenario())
    assert delivered == 2
    assert a.accepted and b.accepted
    assert a.sent == [{"event": "new-measurement", "data": {"id": 1}}]
    assert b.sent == a.sent


def test_failing_and_slow_subscribers_are_dropped():
    async def scenario():
        hub = ConnectionHub(timeout=0.05)
        ok, broken, slow = FakeSocket(), FakeSocket(fail=True), FakeSocket(delay=1.0)
        for ws in (ok, broken, slow):
            await hub.connect(ws)
        delivered = await hub.emit("new-measurement", {"id": 2})
        return hub, ok, delivered

    hub, ok, delivered = asyncio.run(scenario())
    assert delivered == 1
    assert len(hub) == 1
    assert ok in hub.connections


def test_emit_without_subscribers():
    assert asyncio.run(ConnectionHub().emit("new-measurement", {})) == 0


def test_disconnect():
    async def scenario():
        hub = ConnectionHub()
        ws = FakeSocket()
        await hub.connect(ws)
        await hub.disconnect(ws)
        await hub.disconnect(ws)
        return hub

    assert len(asyncio.run(scenario())) == 0


def test_slow_subscribers_are_sent_concurrently():
    async def scenario():
        hub = ConnectionHub(timeout=0.1)
        slow = [FakeSocket(delay=1.0) for _ in range(5)]
        ok = FakeSocket()
        for ws in slow + [ok]:
            await hub.connect(ws)
        started = time.monotonic()
        delivered = await hub.emit("new-measurement", {"id": 3})
        return hub, slow, ok, delivered, time.monotonic() - started

    hub, slow, ok, delivered, elapsed = asyncio.run(scenario())
    assert delivered == 1
    assert ok.sent
    # One timeout for the sends plus one for the closes, not one per subscriber
    assert elapsed < 0.4
    assert all(ws.closed for ws in slow)
    assert list(hub.connections) == [ok]


def test_dropped_subscribers_are_closed():
    async def scenario():
        hub = ConnectionHub()
        broken = FakeSocket(fail=True)
        gone = FakeSocket(fail=True, close_fails=True)
        ok = FakeSocket()
        for ws in (broken, gone, ok):
            await hub.connect(ws)
        delivered = await hub.emit("new-measurement", {"id": 4})
        return hub, broken, gone, ok, delivered

    hub, broken, gone, ok, delivered = asyncio.run(scenario())
    assert delivered == 1
    assert broken.closed
    assert not gone.closed
    assert not ok.closed
    assert len(hub) == 1
