from typing import Dict, List
from fastapi import WebSocket
import asyncio
import json
from memberhub.core.logging import logger


class ConnectionManager:
    """Open notification sockets per member; one member may hold several tabs."""

    def __init__(self):
        self.active: Dict[str, List[WebSocket]] = {}
        self.lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        async with self.lock:
            self.active.setdefault(str(user_id), []).append(websocket)

    async def disconnect(self, user_id: str, websocket: WebSocket):
        async with self.lock:
            conns = self.active.get(str(user_id), [])
            if websocket in conns:
                conns.remove(websocket)
            if not conns:
                self.active.pop(str(user_id), None)

    async def send_personal_message(self, user_id, message: dict) -> int:
        """Send to every socket of one member; returns how many accepted it."""
        data = json.dumps(message, default=str)
        delivered = 0
        for ws in list(self.active.get(str(user_id), [])):
            try:
                await ws.send_text(data)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping broken websocket for user {user_id}: {e}")
                await self.disconnect(user_id, ws)
        return delivered


manager = ConnectionManager()
