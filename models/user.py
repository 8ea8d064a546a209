from tortoise import fields, models

from core.config import settings


class User(models.Model):
    id = fields.IntField(pk=True)
    email = fields.CharField(max_length=255, unique=True)
    full_name = fields.CharField(max_length=255, null=True)
    phone = fields.CharField(max_length=20, null=True)

    # null role means a plain customer
    role = fields.ForeignKeyField(
        "models.Role",
        related_name="users",
        on_delete=fields.RESTRICT,
        null=True
    )

    created_at = fields.DatetimeField(auto_now_add=True)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "user"

    def __str__(self):
        return self.email

    async def is_privileged(self) -> bool:
        """
        Staff roles (admin, manager, support) see every chat session
        and may assign sessions to themselves.
        """
        await self.fetch_related("role")
        if not self.role:
            return False
        return self.role.name in settings.PRIVILEGED_ROLES

    async def can_see_session(self, session) -> bool:
        if await self.is_privileged():
            return True
        return session.user_id == self.id

    def to_dict(self, include_role=False):
        data = {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

        if include_role:
            data["role"] = self.role.to_dict() if self.role else None

        return data
