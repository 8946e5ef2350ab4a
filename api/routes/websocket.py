"""WebSocket feed of published bridge events.

Clients receive every event by default. Sending
``{"type": "subscribe", "address": "0x..."}`` narrows the feed to events
naming that address; ``{"type": "subscribe", "address": null}`` widens it
again. Any other message is answered with a pong.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from core.errors import ValidationError
from core.types import Address, normalize_address
from events import BridgeEvent, event_addresses, event_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConnectionManager:
    """Track open sockets and the address each one follows."""

    def __init__(self):
        self.filters: Dict[WebSocket, Optional[Address]] = {}

    def __len__(self) -> int:
        return len(self.filters)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.filters[websocket] = None
        logger.info(f"WebSocket connected. Total connections: {len(self)}")

    def disconnect(self, websocket: WebSocket):
        self.filters.pop(websocket, None)
        logger.info(f"WebSocket disconnected. Total connections: {len(self)}")

    def follow(self, websocket: WebSocket, address: Optional[Address]):
        self.filters[websocket] = address

    async def publish(self, event: BridgeEvent):
        """Send an event to every client whose filter it matches.

        Clients that fail to receive are dropped.
        """
        concerned = set(event_addresses(event))
        message = {"type": "bridge_event", "event": event_to_dict(event), "timestamp": _now()}

        for connection, address in list(self.filters.items()):
            if address is not None and address not in concerned:
                continue
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Dropping client after failed send: {e}")
                self.disconnect(connection)


# Global connection manager
manager = ConnectionManager()


def _parse_subscription(text: str) -> Optional[dict]:
    try:
        message = json.loads(text)
    except ValueError:
        return None
    if isinstance(message, dict) and message.get("type") == "subscribe":
        return message
    return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Live deposit and withdrawal events."""
    await manager.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()

            subscription = _parse_subscription(text)
            if subscription is None:
                await websocket.send_json({"type": "pong", "timestamp": _now()})
                continue

            address = subscription.get("address")
            try:
                address = normalize_address(address) if address else None
            except ValidationError as e:
                await websocket.send_json({"type": "error", "detail": str(e)})
                continue

            manager.follow(websocket, address)
            await websocket.send_json({"type": "subscribed", "address": address})
    except WebSocketDisconnect:
        manager.disconnect(websocket)


async def broadcast_event(event: BridgeEvent):
    """Event log subscriber feeding the socket clients."""
    await manager.publish(event)
