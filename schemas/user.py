from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RoleOut(BaseModel):
    id: int
    name: str
    display_name: str


class UserOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime
    role: Optional[RoleOut] = None
