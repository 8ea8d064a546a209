import os

from fastapi import FastAPI
from fastapi.middleware import Middleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from tortoise.contrib.fastapi import register_tortoise

from api.errors import register_error_handlers
from api.v1.chat import router as chat_router
from api.v1.comments import router as comments_router
from api.v1.uploads import router as uploads_router
from api.v1.users import router as users_router
from api.v1.ws import router as ws_router
from core.config import settings
from init_db import TORTOISE_ORM, init_db_data

middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
]

app = FastAPI(
    title="Storefront Support Backend",
    middleware=middleware
)

os.makedirs(settings.STATIC_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

register_error_handlers(app)

# opens the ORM for the app's lifespan; startup hooks below run after it
register_tortoise(app, config=TORTOISE_ORM, generate_schemas=True)


@app.on_event("startup")
async def startup():
    await init_db_data()


app.include_router(users_router)
app.include_router(chat_router)
app.include_router(comments_router)
app.include_router(uploads_router)
app.include_router(ws_router)
