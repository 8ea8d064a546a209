from typing import List

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from core.security import decode_access_token
from models.user import User
from services.typing_service import TypingService

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def get_user_from_token(token: str) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = decode_access_token(token)
    except (JWTError, ValueError):
        raise credentials_exception
    if user_id is None:
        raise credentials_exception

    user = await User.get_or_none(id=user_id, is_active=True).prefetch_related("role")
    if user is None:
        raise credentials_exception
    return user


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> User:
    return await get_user_from_token(credentials.credentials)


async def get_optional_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(optional_security)
) -> User | None:
    """Anonymous visitors get None instead of a 401"""
    if credentials is None:
        return None
    return await get_user_from_token(credentials.credentials)


def require_role(allowed_roles: List[str]):
    async def role_checker(
            current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User has no role assigned"
            )

        if current_user.role.name not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}"
            )

        return current_user

    return role_checker


def get_typing_service() -> TypingService:
    return TypingService()
