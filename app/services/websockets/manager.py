# app/services/websockets/manager.py
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set
from fastapi import WebSocket
import asyncio
import json
import logging

from app.integrations.events import StockChangeEvent
from app.integrations.notification_bus import NotificationBus

logger = logging.getLogger(__name__)

class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._send_tasks: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        """Broadcast message to all connected clients"""
        json_message = json.dumps(message)
        disconnected = []

        for connection in list(self.active_connections):
            try:
                await connection.send_text(json_message)
            except Exception as e:
                logger.error(f"Error sending to WebSocket: {e}")
                disconnected.append(connection)

        # Clean up disconnected clients
        for connection in disconnected:
            self.disconnect(connection)

    def attach(self, bus: NotificationBus) -> None:
        """Relay every stock change on the bus to connected clients."""
        self.detach()
        self._unsubscribe = bus.subscribe(self._on_stock_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_stock_change(self, product_id: str, new_quantity: int) -> None:
        if not self.active_connections:
            return
        event = StockChangeEvent(
            product_id=product_id,
            new_quantity=new_quantity,
            timestamp=datetime.now(timezone.utc),
        )
        message = {
            "type": "stock_update",
            "product_id": event.product_id,
            "quantity": event.new_quantity,
            "timestamp": event.timestamp.isoformat(),
        }
        # Bus callbacks are synchronous; sending happens on the loop
        task = asyncio.get_running_loop().create_task(self.broadcast(message))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

# Global connection manager instance
manager = ConnectionManager()
