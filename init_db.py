from tortoise import Tortoise

from core.config import settings
from core.logger import app_logger

MODEL_MODULES = [
    "models.role",
    "models.user",
    "models.chat_session",
    "models.chat_message",
    "models.comment",
]

TORTOISE_ORM = {
    "connections": {
        "default": settings.DB_URL
    },
    "apps": {
        "models": {
            "models": MODEL_MODULES,
            "default_connection": "default",
        }
    },
}

DEFAULT_ROLES = [
    ("user", "Customer"),
    ("support", "Support agent"),
    ("manager", "Manager"),
    ("admin", "Administrator"),
]


async def init_db(config: dict = None):
    await Tortoise.init(config=config or TORTOISE_ORM)
    await Tortoise.generate_schemas()


async def close_db():
    await Tortoise.close_connections()


async def init_db_data():
    from models.role import Role

    for name, display_name in DEFAULT_ROLES:
        _, created = await Role.get_or_create(name=name, defaults={"display_name": display_name})
        if created:
            app_logger.info(f"Seeded role '{name}'")
