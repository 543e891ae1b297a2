"""Realtime websocket push of evaluated opportunities."""

import asyncio
import json
from typing import Any, Dict, Optional, Set

import websockets
from loguru import logger

from ..config import BroadcastConfig
from ..core.types import Opportunity

OPPORTUNITY_EVENT = "arbitrage_opportunity"


class OpportunityBroadcaster:
    """Pushes every opportunity to the currently connected websocket clients.

    Delivery is best-effort: a client that is gone or slow to accept a frame
    is dropped, and nothing is queued for clients that connect later.
    """

    def __init__(self, config: BroadcastConfig):
        self.config = config
        self.clients: Set[Any] = set()
        self._server = None

    @property
    def running(self) -> bool:
        return self._server is not None

    async def start(self):
        """Start accepting websocket clients."""
        if self._server is not None:
            return
        self._server = await websockets.serve(self._handler, self.config.host, self.config.port)
        logger.info(f"Opportunity broadcaster listening on ws://{self.config.host}:{self.config.port}")

    async def stop(self):
        """Close every client and the listening socket."""
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self.clients.clear()
        logger.info("Opportunity broadcaster stopped")

    async def broadcast(self, opportunity: Opportunity) -> int:
        """Send one opportunity to all clients; returns how many received it."""
        if not self.clients:
            return 0
        message = json.dumps({"type": OPPORTUNITY_EVENT, "data": opportunity.to_dict()})
        clients = list(self.clients)
        timeout = self.config.send_timeout_sec
        results = await asyncio.gather(
            *(asyncio.wait_for(client.send(message), timeout=timeout) for client in clients),
            return_exceptions=True,
        )
        delivered = 0
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                logger.debug(f"Dropping websocket client after send failure: {result}")
                self.clients.discard(client)
            else:
                delivered += 1
        logger.debug(f"Broadcast opportunity to {delivered}/{len(clients)} clients")
        return delivered

    async def _handler(self, websocket):
        """Track one client and answer its control messages."""
        self.clients.add(websocket)
        logger.info(f"Websocket client connected. Active: {len(self.clients)}")
        try:
            async for message in websocket:
                reply = self.handle_message(message)
                if reply is not None:
                    await websocket.send(json.dumps(reply))
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.clients.discard(websocket)
            logger.info(f"Websocket client disconnected. Active: {len(self.clients)}")

    @staticmethod
    def handle_message(message) -> Optional[Dict[str, Any]]:
        """Reply for one inbound frame, or None when nothing should be sent."""
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            data = message
        event = data.get("type") if isinstance(data, dict) else data
        if not isinstance(event, str):
            return {"type": "error", "message": "Invalid message"}

        event = event.strip()
        if event == "subscribe_opportunities":
            return {"type": "subscribed", "channel": OPPORTUNITY_EVENT}
        if event == "ping":
            return {"type": "pong"}
        return {"type": "error", "message": f"Unknown message type: {event}"}
