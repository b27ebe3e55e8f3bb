from fastapi import WebSocket
from typing import List
import json
import logging
import asyncio

logger = logging.getLogger(__name__)


class ConnectionManager:

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Client connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"Client disconnected. Total connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        coros = [self._safe_send(connection, message) for connection in list(self.active_connections)]
        await asyncio.gather(*coros, return_exceptions=True)

    async def _safe_send(self, connection: WebSocket, message: dict):
        try:
            await connection.send_text(json.dumps(message, default=str))
        except Exception as e:
            logger.error(f"Failed to send to client: {str(e)}")
            self.disconnect(connection)
