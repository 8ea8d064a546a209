import os
import re
from uuid import uuid4

from fastapi import UploadFile

from core.config import settings
from core.logger import app_logger

EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,10}$")


class UploadService:
    """Stores uploaded files under the static directory and returns their public path."""

    @staticmethod
    def validate_image(content_type: str | None, size: int):
        if not content_type or not content_type.startswith("image/"):
            raise ValueError("Please select a valid image file")
        if size > settings.MAX_IMAGE_SIZE:
            raise ValueError("File size must be less than 10MB")

    @staticmethod
    def validate_attachment(size: int):
        if size == 0:
            raise ValueError("File is empty")
        if size > settings.MAX_FILE_SIZE:
            raise ValueError("File size must be less than 20MB")

    @staticmethod
    def extension(filename: str | None) -> str:
        name = os.path.basename(filename or "")
        if "." not in name:
            return "bin"
        ext = name.rsplit(".", 1)[-1]
        if not EXTENSION_RE.match(ext):
            raise ValueError("Invalid file extension")
        return ext.lower()

    @staticmethod
    async def save(file: UploadFile, folder: str, content: bytes = None) -> str:
        if content is None:
            content = await file.read()

        name = file.filename or "upload"
        unique = f"{uuid4()}.{UploadService.extension(name)}"

        directory = os.path.join(settings.STATIC_DIR, folder)
        os.makedirs(directory, exist_ok=True)

        with open(os.path.join(directory, unique), "wb") as f:
            f.write(content)

        app_logger.info(f"Stored upload '{name}' as {folder}/{unique} ({len(content)} bytes)")
        return f"/static/{folder}/{unique}"

    async def upload_image(self, file: UploadFile) -> str:
        content = await file.read()
        self.validate_image(file.content_type, len(content))
        return await self.save(file, "images", content)

    async def upload_attachment(self, file: UploadFile) -> str:
        content = await file.read()
        self.validate_attachment(len(content))
        return await self.save(file, "chat", content)
