from typing import Callable, List

from tortoise import timezone

from core.logger import chat_logger
from models.chat_message import MessageType
from models.chat_session import SessionPriority, SessionStatus
from services.chat_service import ChatService


class ChatThreadReconciler:
    """
    In-memory view of one caller's chat: the session list, the focused
    session and its thread.

    Every change goes through the gateway and is followed by a re-fetch that
    replaces the local lists wholesale. Gateway failures are logged and leave
    the current view as it was.
    """

    def __init__(self, gateway: ChatService, user_id: int | None, is_admin: bool = False):
        self.gateway = gateway
        self.user_id = user_id
        self.is_admin = is_admin

        self.sessions: List[dict] = []
        self.messages: List[dict] = []
        self.active_session: dict | None = None
        self.loading = False
        self.sending = False

        self._fetch_seq = 0
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]):
        """Listener is called whenever the focused session changes."""
        self._listeners.append(listener)

    @property
    def active_session_id(self):
        return self.active_session["id"] if self.active_session else None

    # --------------------------------------
    # Fetches
    # --------------------------------------
    async def load_sessions(self):
        if self.user_id is None:
            return

        self.loading = True
        try:
            if self.is_admin:
                data = await self.gateway.list_sessions(viewer_id=self.user_id)
            else:
                data = await self.gateway.list_sessions(viewer_id=self.user_id, user_id=self.user_id)
        except Exception as e:
            chat_logger.error(f"Error loading chat sessions: {e}")
            return
        finally:
            self.loading = False

        self.sessions = data
        if self.active_session is not None:
            fresh = self.find_session(self.active_session["id"], include_active=False)
            if fresh is not None:
                self.active_session = fresh

    async def load_messages(self, session_id: int):
        self._fetch_seq += 1
        seq = self._fetch_seq

        try:
            data = await self.gateway.get_messages(session_id)
        except Exception as e:
            chat_logger.error(f"Error loading messages for session {session_id}: {e}")
            return

        # a newer fetch started, or focus moved away while this one was in flight
        if seq != self._fetch_seq or self.active_session_id != session_id:
            chat_logger.debug(f"Discarded stale thread of session {session_id} (request #{seq})")
            return

        self.messages = data

        if self.user_id is not None:
            try:
                await self.gateway.mark_read(session_id, self.user_id)
            except Exception as e:
                chat_logger.error(f"Error marking session {session_id} as read: {e}")

    def find_session(self, session_id: int, include_active: bool = True):
        if include_active and self.active_session and self.active_session["id"] == session_id:
            return self.active_session
        for session in self.sessions:
            if session["id"] == session_id:
                return session
        return None

    # --------------------------------------
    # Intents
    # --------------------------------------
    async def open_session(self, session: dict | None):
        changed = self.active_session_id != (session["id"] if session else None)
        self.active_session = session
        if changed:
            self.messages = []
            self._notify()

        if session is not None:
            await self.load_messages(session["id"])

    async def create_session(self, subject: str = "General Support",
                             priority: str = SessionPriority.NORMAL.value):
        if self.user_id is None:
            return None

        try:
            session = await self.gateway.create_session(self.user_id, subject=subject, priority=priority)
        except Exception as e:
            chat_logger.error(f"Error creating chat session: {e}")
            return None

        await self.load_sessions()
        await self.open_session(session)
        return session

    async def send(self, session_id: int, body: str) -> bool:
        if self.user_id is None or not body or not body.strip():
            return False

        session = self.find_session(session_id)
        if session is None or session["status"] == SessionStatus.CLOSED.value:
            return False

        self.sending = True
        try:
            await self.gateway.send_message(
                session_id=session_id,
                sender_id=self.user_id,
                message=body.strip(),
                message_type=MessageType.TEXT.value
            )
        except Exception as e:
            chat_logger.error(f"Error sending message to session {session_id}: {e}")
            return False
        finally:
            self.sending = False

        await self.load_messages(session_id)

        if session["status"] == SessionStatus.WAITING.value:
            try:
                await self.gateway.update_session(session_id, status=SessionStatus.ACTIVE.value)
            except Exception as e:
                chat_logger.error(f"Error activating session {session_id}: {e}")
            await self.load_sessions()

        return True

    async def attach_file(self, session_id: int, file_name: str, file_url: str) -> bool:
        if self.user_id is None or not file_name or not file_url:
            return False
        session = self.find_session(session_id)
        if session is None or session["status"] == SessionStatus.CLOSED.value:
            return False

        self.sending = True
        try:
            await self.gateway.send_message(
                session_id=session_id,
                sender_id=self.user_id,
                message=f"Shared file: {file_name}",
                message_type=MessageType.FILE.value,
                file_url=file_url
            )
        except Exception as e:
            chat_logger.error(f"Error attaching file to session {session_id}: {e}")
            return False
        finally:
            self.sending = False

        await self.load_messages(session_id)
        return True

    async def assign(self, session_id: int) -> bool:
        if self.user_id is None or not self.is_admin:
            return False

        session = self.find_session(session_id)
        if session is None or session["status"] == SessionStatus.CLOSED.value:
            return False
        if session.get("admin_id") not in (None, self.user_id):
            return False

        try:
            await self.gateway.update_session(
                session_id,
                admin_id=self.user_id,
                status=SessionStatus.ACTIVE.value
            )
        except Exception as e:
            chat_logger.error(f"Error assigning session {session_id}: {e}")
            return False

        await self.load_sessions()
        return True

    async def close(self, session_id: int) -> bool:
        try:
            await self.gateway.update_session(
                session_id,
                status=SessionStatus.CLOSED.value,
                closed_at=timezone.now()
            )
        except Exception as e:
            chat_logger.error(f"Error closing session {session_id}: {e}")
            return False

        await self.load_sessions()

        if self.active_session_id == session_id:
            self.active_session = None
            self.messages = []
            self._notify()
        return True

    async def reopen(self, session_id: int) -> bool:
        session = self.find_session(session_id)
        if session is None:
            return False

        # an assigned session cannot go back to waiting
        status = SessionStatus.ACTIVE if session.get("admin_id") else SessionStatus.WAITING
        try:
            await self.gateway.update_session(session_id, status=status.value, closed_at=None)
        except Exception as e:
            chat_logger.error(f"Error reopening session {session_id}: {e}")
            return False

        await self.load_sessions()
        return True

    @property
    def total_unread(self) -> int:
        return sum(s.get("unread_count") or 0 for s in self.sessions)

    def _notify(self):
        for listener in self._listeners:
            listener()
