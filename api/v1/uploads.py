from fastapi import APIRouter, Depends, UploadFile

from api.deps import get_current_user
from models.user import User
from services.upload_service import UploadService

router = APIRouter(prefix="/api/v1/uploads", tags=["Uploads"])


@router.post("/images")
async def upload_image(
        file: UploadFile,
        service: UploadService = Depends(),
        current_user: User = Depends(get_current_user)
):
    """Product/profile images: image/* only, up to 10MB."""
    url = await service.upload_image(file)
    return {"url": url}
