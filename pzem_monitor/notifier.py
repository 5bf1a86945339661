# pzem_monitor/notifier.py
import asyncio
import logging

from .config import NOTIFY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

NEW_MEASUREMENT = "new-measurement"


class ConnectionHub:
    """
    Connected websocket subscribers. Sends are fire-and-forget: a subscriber
    that errors or exceeds the timeout is dropped, nothing is queued or replayed.
    """

    def __init__(self, timeout: float = NOTIFY_TIMEOUT_SECONDS):
        self.connections = set()
        self.timeout = timeout
        self._lock = asyncio.Lock()

    def __len__(self):
        return len(self.connections)

    async def connect(self, ws):
        # emit holds the same lock; a socket only joins once accepted
        async with self._lock:
            await ws.accept()
            self.connections.add(ws)
        logger.info("Subscriber connected (%d total)", len(self.connections))

    async def disconnect(self, ws):
        async with self._lock:
            self.connections.discard(ws)
        logger.info("Subscriber disconnected (%d total)", len(self.connections))

    async def emit(self, event: str, data) -> int:
        """
        Send {"event", "data"} to every subscriber at once; returns how many
        got it. The whole fan-out is bounded by a single timeout.
        """
        obj = {"event": event, "data": data}
        async with self._lock:
            conns = list(self.connections)
            results = await asyncio.gather(
                *(asyncio.wait_for(ws.send_json(obj), timeout=self.timeout) for ws in conns),
                return_exceptions=True
            )
            dropped = []
            for ws, result in zip(conns, results):
                if isinstance(result, Exception):
                    logger.warning("Dropping subscriber after failed %s send: %r", event, result)
                    self.connections.discard(ws)
                    dropped.append(ws)
        if dropped:
            await asyncio.gather(*(self._close(ws) for ws in dropped))
        return len(conns) - len(dropped)

    async def _close(self, ws):
        # Closing tells the client to reconnect; the socket may already be gone
        try:
            await asyncio.wait_for(ws.close(), timeout=self.timeout)
        except Exception as e:
            logger.debug("Close of dropped subscriber failed: %r", e)
