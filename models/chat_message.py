from enum import Enum

from tortoise import fields, models


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class ChatMessage(models.Model):
    id = fields.IntField(pk=True)

    session = fields.ForeignKeyField(
        "models.ChatSession",
        related_name="messages",
        on_delete=fields.CASCADE
    )
    sender = fields.ForeignKeyField(
        "models.User",
        related_name="sent_messages",
        null=True,
        on_delete=fields.SET_NULL
    )

    message = fields.TextField()
    message_type = fields.CharEnumField(MessageType, max_length=20, default=MessageType.TEXT)

    # attachments only
    file_url = fields.CharField(max_length=400, null=True)

    # set once, by someone other than the sender
    read_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "chat_messages"
