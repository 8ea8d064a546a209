from typing import Optional

from pydantic import BaseModel, Field

from models.chat_message import MessageType
from models.chat_session import SessionPriority


class CreateSessionRequest(BaseModel):
    subject: str = Field("General Support", max_length=255)
    priority: SessionPriority = SessionPriority.NORMAL


class SendMessageRequest(BaseModel):
    message: str
    message_type: MessageType = MessageType.TEXT
    file_url: Optional[str] = None


class TypingRequest(BaseModel):
    is_typing: bool = True
