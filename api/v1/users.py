from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_current_user
from models.user import User
from schemas.user import UserOut
from services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user.to_dict(include_role=True)


@router.get("/{user_id}", response_model=UserOut)
async def read_profile(
        user_id: int,
        current_user: User = Depends(get_current_user)
):
    profile = await UserService.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile
