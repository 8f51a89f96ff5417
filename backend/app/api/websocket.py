"""WebSocket feed of OTC and M1 signals.

Clients receive every signal unless they send a ``subscribe`` message;
after that only signals for the subscribed pairs are pushed to them.
Pair names are matched loosely, so ``EUR/USD`` covers both the OTC pair
``EUR/USD OTC`` and the M1 symbol ``EURUSD``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from core.models.otc import M1Signal, M1TradeResult, OTCSignal, OTCTradeResult

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 60.0


def _orjson_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


def pair_key(pair: str) -> str:
    """``"eur/usd otc"`` -> ``"EURUSD"``."""
    key = "".join(ch for ch in pair.upper() if ch.isalnum())
    return key.removesuffix("OTC") if len(key) > 3 else key


class FeedMessage(BaseModel):
    """One frame pushed to feed clients."""

    type: str
    data: dict[str, Any]
    timestamp: datetime

    @classmethod
    def now(cls, kind: str, data: dict[str, Any]) -> "FeedMessage":
        return cls(type=kind, data=data, timestamp=datetime.now(timezone.utc))

    def to_json(self) -> str:
        return _orjson_dumps(self.model_dump(mode="json"))


class ConnectionManager:
    """Connected feed clients and their pair subscriptions."""

    def __init__(self):
        # None means "all pairs"
        self._clients: dict[WebSocket, set[str] | None] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients[websocket] = None
        logger.info(f"Feed client connected ({len(self._clients)} total)")

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.pop(websocket, None)
        logger.info(f"Feed client disconnected ({len(self._clients)} total)")

    async def subscribe(self, websocket: WebSocket, pairs: list[str]) -> list[str]:
        """Restrict a client to ``pairs``; an empty list restores the full feed."""
        keys = {pair_key(p) for p in pairs if isinstance(p, str) and p.strip()}
        async with self._lock:
            if websocket in self._clients:
                self._clients[websocket] = keys or None
        return sorted(keys)

    def subscriptions(self, websocket: WebSocket) -> set[str] | None:
        return self._clients.get(websocket)

    async def broadcast(self, message: FeedMessage, pair: str | None = None) -> int:
        """Send ``message`` to every client interested in ``pair``.

        Clients whose socket fails are dropped. Returns the number of
        clients reached.
        """
        if not self._clients:
            return 0

        text = message.to_json()
        key = pair_key(pair) if pair else None
        sent = 0
        dead = []

        async with self._lock:
            for websocket, pairs in self._clients.items():
                if key and pairs is not None and key not in pairs:
                    continue
                try:
                    await websocket.send_text(text)
                    sent += 1
                except Exception as e:
                    logger.warning(f"Dropping feed client: {e}")
                    dead.append(websocket)

            for websocket in dead:
                del self._clients[websocket]
        return sent

    async def _publish(self, kind: str, model: BaseModel, pair: str) -> None:
        data = model.model_dump(mode="json", by_alias=True)
        await self.broadcast(FeedMessage.now(kind, data), pair)

    async def send_otc_signal(self, signal: OTCSignal) -> None:
        await self._publish("otc_signal", signal, signal.pair)

    async def send_otc_result(self, result: OTCTradeResult) -> None:
        await self._publish("otc_result", result, result.signal.pair)

    async def send_m1_signal(self, signal: M1Signal) -> None:
        await self._publish("m1_signal", signal, signal.symbol)

    async def send_m1_trade(self, trade: M1TradeResult) -> None:
        await self._publish("m1_trade", trade, trade.symbol)

    async def send_status(self, status: dict[str, Any]) -> None:
        await self.broadcast(FeedMessage.now("status", status))


manager = ConnectionManager()


async def _reply(websocket: WebSocket, kind: str, data: dict[str, Any]) -> None:
    await websocket.send_text(FeedMessage.now(kind, data).to_json())


async def websocket_endpoint(websocket: WebSocket):
    """
    Signal feed.

    Pushed frames: ``otc_signal``, ``otc_result``, ``m1_signal``,
    ``m1_trade``, ``status`` and ``ping`` (after a minute of silence).

    Accepted client frames:
    - ``{"type": "ping"}`` -> ``pong``
    - ``{"type": "subscribe", "data": {"pairs": ["EUR/USD"]}}`` -> ``subscribed``
    """
    await manager.connect(websocket)

    try:
        await _reply(websocket, "connected", {"message": "Connected to signal feed"})

        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                await _reply(websocket, "ping", {})
                continue

            try:
                message = orjson.loads(data)
            except orjson.JSONDecodeError:
                await _reply(websocket, "error", {"message": "Invalid JSON"})
                continue
            await handle_client_message(websocket, message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(
    websocket: WebSocket, message: Any, connections: ConnectionManager | None = None
) -> None:
    if connections is None:
        connections = manager
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        await _reply(websocket, "pong", {})
    elif msg_type == "subscribe":
        data = message.get("data") or {}
        pairs = data.get("pairs", []) if isinstance(data, dict) else []
        keys = await connections.subscribe(websocket, pairs if isinstance(pairs, list) else [])
        await _reply(websocket, "subscribed", {"pairs": keys})
    else:
        await _reply(websocket, "error", {"message": f"Unknown message type: {msg_type}"})
