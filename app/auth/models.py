from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from enum import Enum
from app.models.common import CamelModel

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=2, max_length=100)

class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole
    permissions: List[str] = []

class LoginResponse(CamelModel):
    user: UserResponse
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int
