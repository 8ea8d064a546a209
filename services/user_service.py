from core.logger import db_logger
from models.role import Role
from models.user import User


class UserService:
    @staticmethod
    async def get_or_create_user(email: str, full_name: str = None, role_name: str = None):
        role = await Role.get_or_none(name=role_name) if role_name else None
        user, created = await User.get_or_create(
            email=email,
            defaults={"full_name": full_name, "role": role}
        )
        if created:
            db_logger.log_create("User", {"id": user.id, "email": email, "role": role_name})
        return user

    @staticmethod
    async def get_profile(user_id: int):
        """Display data for a user, or None when the id is unknown"""
        user = await User.get_or_none(id=user_id).prefetch_related("role")
        if user is None:
            db_logger.logger.warning(f"Profile {user_id} not found")
            return None
        return user.to_dict(include_role=True)
