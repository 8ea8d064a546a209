from fastapi import WebSocket

from core.logger import ws_logger


class WebSocketManager:
    """Connections grouped by chat session id; one process-wide instance."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(WebSocketManager, cls).__new__(cls)
            cls._instance.active_connections = {}
        return cls._instance

    async def add(self, session_id: int, websocket: WebSocket):
        self.active_connections.setdefault(session_id, []).append(websocket)
        ws_logger.logger.info(f"✅ WebSocket subscribed to session {session_id}")

    async def remove(self, session_id: int, websocket: WebSocket):
        connections = self.active_connections.get(session_id)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[session_id]

        ws_logger.logger.info(f"❌ WebSocket unsubscribed from session {session_id}")

    async def broadcast(self, session_id: int, data: dict):
        if session_id not in self.active_connections:
            return

        dead_connections = []

        for ws in list(self.active_connections[session_id]):
            try:
                await ws.send_json(data)
            except Exception as e:
                ws_logger.logger.warning(f"⚠️ Failed to send to WebSocket: {e}")
                dead_connections.append(ws)

        for ws in dead_connections:
            await self.remove(session_id, ws)

        ws_logger.log_broadcast(session_id, data.get("type", "unknown"))
