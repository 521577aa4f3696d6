# app/routes/websockets.py
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from app.services.websockets.manager import manager
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/ws/stock")
async def stock_websocket(websocket: WebSocket):
    """Pushes a stock_update message for every change on the notification bus"""
    await manager.connect(websocket)
    try:
        while True:
            # Keep connection alive by waiting for messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
        logger.info("WebSocket client disconnected")
