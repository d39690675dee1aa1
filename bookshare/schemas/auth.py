from pydantic import BaseModel
from typing import Optional

class TelegramUser(BaseModel):
    id: int
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    photo_url: Optional[str] = None
    language_code: Optional[str] = None

    class Config:
        extra = "ignore"

class InitData(BaseModel):
    """Verified Telegram Mini App init data."""
    auth_date: int
    query_id: Optional[str] = None
    user: Optional[TelegramUser] = None

class UserResponse(BaseModel):
    id: int
    firstName: str
    lastName: Optional[str] = None
    username: Optional[str] = None
    photoUrl: Optional[str] = None

class MeResponse(BaseModel):
    user: UserResponse
    isAdmin: bool
