from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


# 🔹 유저 응답용 (비밀번호 해시 제외)
class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    is_admin: bool
    profile_image: str
    last_login: datetime
    created_at: datetime

    class Config:
        from_attributes = True  # SQLAlchemy → Pydantic 변환
