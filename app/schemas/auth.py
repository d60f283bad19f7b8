import uuid
from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=64)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class GoogleAuthRequest(BaseModel):
    credential: str = Field(min_length=1)

class AuthResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: EmailStr
    is_admin: bool
    token: str
    token_type: str = "bearer"
    redirect_url: str

class MeResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: EmailStr
    is_admin: bool
    purchased_content: list[uuid.UUID]
    purchased_projects: list[uuid.UUID]
