"""
Account and token DTOs
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from .models import Role


def _normalize_username(value: str) -> str:
    return value.strip().lower()


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: str
    role: Role
    store_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    """Returned by register and login: the account plus a fresh token pair"""

    user: UserResponse
    token: TokenResponse


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return _normalize_username(value)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    """
    Public sign-up. Usernames are case-insensitive and stored lowercased.
    Only sellers may carry a store name.
    """

    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.CUSTOMER
    store_name: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        value = _normalize_username(value)
        if len(value) < 3:
            raise ValueError("Username must have at least 3 characters")
        return value

    @model_validator(mode="after")
    def check_store_name(self) -> "RegisterRequest":
        if self.store_name is not None and self.role != Role.SELLER:
            raise ValueError("Only sellers can set a store name")
        return self
