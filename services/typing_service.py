from core.cache import redis_client
from core.config import settings


class TypingService:
    """
    Who is typing in a session. Each keystroke refreshes a short-lived key;
    the indicator goes away on its own once the key expires.
    """

    def __init__(self, client=None, timeout_ms: int = None):
        self.client = client if client is not None else redis_client
        self.timeout_ms = timeout_ms or settings.TYPING_TIMEOUT_MS

    @staticmethod
    def _key(session_id: int, user_id: int) -> str:
        return f"typing:{session_id}:{user_id}"

    async def set_typing(self, session_id: int, user_id: int, is_typing: bool = True):
        key = self._key(session_id, user_id)
        if is_typing:
            await self.client.set(key, "1", px=self.timeout_ms)
        else:
            await self.client.delete(key)

    async def get_typing(self, session_id: int, exclude_user_id: int = None):
        users = []
        async for key in self.client.scan_iter(match=f"typing:{session_id}:*"):
            user_id = int(key.rsplit(":", 1)[1])
            if user_id != exclude_user_id:
                users.append(user_id)
        return sorted(users)
