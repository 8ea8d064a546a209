from enum import Enum

from tortoise import timezone

from core.logger import db_logger
from models.chat_message import ChatMessage, MessageType
from models.chat_session import ChatSession, SessionPriority, SessionStatus
from models.user import User

SESSION_FIELDS = ("status", "priority", "subject", "admin_id", "closed_at")


def enum_value(value):
    return value.value if isinstance(value, Enum) else value


def serialize_profile(user: User | None):
    if not user:
        return None
    return {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
    }


class ChatService:
    """Gateway operations for chat sessions and their message threads."""

    # --------------------------------------
    # Sessions
    # --------------------------------------
    async def create_session(
            self,
            user_id: int,
            subject: str = "General Support",
            priority: str = SessionPriority.NORMAL.value
    ):
        db_logger.logger.info(f"Creating chat session: subject='{subject}', user_id={user_id}")

        session = await ChatSession.create(
            user_id=user_id,
            subject=subject,
            priority=SessionPriority(priority),
            status=SessionStatus.WAITING
        )
        await session.fetch_related("user", "admin")

        db_logger.log_create("ChatSession", {
            "id": session.id,
            "subject": subject,
            "priority": priority,
            "user_id": user_id
        })

        return await self.serialize_session(session, viewer_id=user_id)

    async def list_sessions(self, viewer_id: int, user_id: int | None = None):
        """All sessions when user_id is None, otherwise only the ones that user opened."""
        db_logger.logger.debug(f"Fetching chat sessions: viewer={viewer_id}, scope_user={user_id}")

        query = ChatSession.all()
        if user_id is not None:
            query = query.filter(user_id=user_id)

        sessions = await query.order_by("-updated_at", "-id").prefetch_related("user", "admin")

        result = [await self.serialize_session(s, viewer_id=viewer_id) for s in sessions]
        db_logger.logger.info(f"✅ Retrieved {len(result)} chat sessions")
        return result

    async def get_session(self, session_id: int, viewer_id: int | None = None):
        session = await ChatSession.get(id=session_id).prefetch_related("user", "admin")
        return await self.serialize_session(session, viewer_id=viewer_id)

    async def update_session(self, session_id: int, **changes):
        unknown = set(changes) - set(SESSION_FIELDS)
        if unknown:
            raise ValueError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        session = await ChatSession.get(id=session_id)

        if "status" in changes:
            changes["status"] = SessionStatus(enum_value(changes["status"]))
        if "priority" in changes:
            changes["priority"] = SessionPriority(enum_value(changes["priority"]))

        new_admin = changes.get("admin_id")
        if new_admin is not None and new_admin != session.admin_id:
            if session.status == SessionStatus.CLOSED:
                raise ValueError("A closed session cannot be assigned")
            if session.admin_id is not None:
                raise ValueError("Session is already assigned")

        admin_id = changes.get("admin_id", session.admin_id)
        status = changes.get("status", session.status)
        if admin_id is not None and status == SessionStatus.WAITING:
            raise ValueError("An assigned session cannot be waiting")

        # closed_at only stays set while the session is closed
        if status != SessionStatus.CLOSED and session.closed_at is not None:
            changes["closed_at"] = None

        try:
            for key, value in changes.items():
                setattr(session, key, value)
            await session.save()
        except Exception as e:
            db_logger.log_error("update_session", e)
            raise

        db_logger.log_update("ChatSession", session_id, {k: enum_value(v) for k, v in changes.items()})

        await session.fetch_related("user", "admin")
        return await self.serialize_session(session)

    # --------------------------------------
    # Messages
    # --------------------------------------
    async def get_messages(self, session_id: int):
        db_logger.logger.debug(f"Fetching messages for session {session_id}")

        msgs = await ChatMessage.filter(
            session_id=session_id
        ).order_by("created_at", "id").prefetch_related("sender")

        db_logger.logger.info(f"✅ Retrieved {len(msgs)} messages from session {session_id}")
        return [self.serialize_message(msg) for msg in msgs]

    async def send_message(
            self,
            session_id: int,
            sender_id: int,
            message: str,
            message_type: str = MessageType.TEXT.value,
            file_url: str = None
    ):
        if not message or not message.strip():
            raise ValueError("Message body is required")

        message_type = MessageType(enum_value(message_type))
        if message_type in (MessageType.FILE, MessageType.IMAGE) and not file_url:
            raise ValueError("Attachments need a file_url")

        session = await ChatSession.get(id=session_id)
        if session.status == SessionStatus.CLOSED:
            raise ValueError("Session is closed")

        try:
            db_logger.logger.info(
                f"💬 Creating message: session={session_id}, sender={sender_id}, "
                f"type={message_type.value}, text_len={len(message)}"
            )

            msg = await ChatMessage.create(
                session_id=session_id,
                sender_id=sender_id,
                message=message.strip(),
                message_type=message_type,
                file_url=file_url
            )

            db_logger.log_create("ChatMessage", {
                "id": msg.id,
                "session_id": session_id,
                "sender_id": sender_id,
                "message_type": message_type.value,
                "file_url": file_url
            })

            await ChatSession.filter(id=session_id).update(updated_at=timezone.now())

            await msg.fetch_related("sender")
            return self.serialize_message(msg)

        except Exception as e:
            db_logger.log_error("send_message", e)
            raise

    async def mark_read(self, session_id: int, reader_id: int) -> int:
        """Stamps read_at on unread messages the reader did not send. Returns rows touched."""
        try:
            updated = await ChatMessage.filter(
                session_id=session_id,
                read_at__isnull=True
            ).exclude(sender_id=reader_id).update(read_at=timezone.now())

            db_logger.logger.info(f"✅ Marked {updated} messages as read in session {session_id}")
            return updated

        except Exception as e:
            db_logger.log_error("mark_read", e)
            raise

    # --------------------------------------
    # Serialization
    # --------------------------------------
    async def serialize_session(self, session: ChatSession, viewer_id: int | None = None):
        last_msg = await ChatMessage.filter(
            session_id=session.id
        ).order_by("-created_at", "-id").prefetch_related("sender").first()

        unread_count = 0
        if viewer_id is not None:
            unread_count = await ChatMessage.filter(
                session_id=session.id,
                read_at__isnull=True
            ).exclude(sender_id=viewer_id).count()

        return {
            "id": session.id,
            "user_id": session.user_id,
            "admin_id": session.admin_id,
            "status": enum_value(session.status),
            "priority": enum_value(session.priority),
            "subject": session.subject,
            "created_at": session.created_at.isoformat(),
            "updated_at": session.updated_at.isoformat() if session.updated_at else None,
            "closed_at": session.closed_at.isoformat() if session.closed_at else None,
            "user": serialize_profile(session.user),
            "admin": serialize_profile(session.admin) if session.admin_id else None,
            "unread_count": unread_count,
            "last_message": self.serialize_message(last_msg) if last_msg else None,
        }

    def serialize_message(self, msg: ChatMessage):
        if not msg:
            return None

        return {
            "id": msg.id,
            "session_id": msg.session_id,
            "sender_id": msg.sender_id,
            "sender": serialize_profile(msg.sender) if msg.sender_id else None,
            "message": msg.message,
            "message_type": enum_value(msg.message_type),
            "file_url": msg.file_url,
            "read_at": msg.read_at.isoformat() if msg.read_at else None,
            "created_at": msg.created_at.isoformat()
        }
