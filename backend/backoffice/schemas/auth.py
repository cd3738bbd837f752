"""
Back-office ledger - auth schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from backoffice.models.enums import UserRole


class LoginRequest(BaseModel):
    """Login request"""
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., min_length=4, description="Password")


class TokenResponse(BaseModel):
    """Access token"""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Lifetime in seconds")


class UserInfo(BaseModel):
    """Current user"""
    id: int
    email: EmailStr
    name: str
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    """Login response"""
    token: TokenResponse
    user: UserInfo
