from enum import Enum

from tortoise import fields, models

from models.chat_message import ChatMessage


class SessionStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    CLOSED = "closed"


class SessionPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ChatSession(models.Model):
    id = fields.IntField(pk=True)
    subject = fields.CharField(max_length=255, default="General Support")
    status = fields.CharEnumField(SessionStatus, max_length=20, default=SessionStatus.WAITING)
    priority = fields.CharEnumField(SessionPriority, max_length=20, default=SessionPriority.NORMAL)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)
    closed_at = fields.DatetimeField(null=True)
    messages: fields.ReverseRelation["ChatMessage"]

    user = fields.ForeignKeyField(
        "models.User",
        related_name="chat_sessions",
        on_delete=fields.CASCADE,
        description="customer who opened the session"
    )

    # assigned staff member; set implies status != waiting
    admin = fields.ForeignKeyField(
        "models.User",
        related_name="assigned_chat_sessions",
        null=True,
        on_delete=fields.SET_NULL,
        description="staff member handling the session"
    )

    class Meta:
        table = "chat_sessions"
        ordering = ["-updated_at"]

    def __str__(self):
        return f"ChatSession #{self.id}: {self.subject}"
