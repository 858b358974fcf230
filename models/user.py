from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Literal, Optional
from datetime import datetime

from auth.password_handler import MAX_PASSWORD_BYTES, password_too_long

class UserBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None

    @field_validator('name', 'phone')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=72)
    role: Literal["user", "host"] = "user"

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v):
        if password_too_long(v):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserResponse(UserBase):
    id: Optional[str] = None
    role: str = "user"
    created_at: Optional[datetime] = None

class User(UserResponse):
    model_config = ConfigDict(extra="ignore")

    password: Optional[str] = None

    @property
    def is_host(self) -> bool:
        return self.role == "host"
