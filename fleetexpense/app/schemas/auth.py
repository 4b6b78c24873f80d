"""
Owner account schemas.
"""

import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class OwnerRegister(BaseModel):
    """Sign-up payload for a new fleet owner."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: Optional[str] = Field(None, max_length=255)

    @field_validator("username")
    @classmethod
    def username_charset(cls, value: str) -> str:
        if not USERNAME_PATTERN.match(value):
            raise ValueError("username may only contain letters, digits, '.', '_' and '-'")
        return value


class OwnerLogin(BaseModel):
    """Credentials; ``username`` also accepts the account email."""
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user_id: int
    username: str
    email: str


class OwnerProfile(BaseModel):
    id: int
    email: str
    username: str
    full_name: Optional[str]
    is_active: bool
    last_login_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
