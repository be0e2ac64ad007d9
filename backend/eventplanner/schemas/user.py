"""Pydantic schemas for users, registration and login."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, HttpUrl, field_validator

from eventplanner.schemas.base import CamelModel, blank_to_none


class RegisterRequest(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    bio: Optional[str] = None
    avatar_url: Optional[HttpUrl] = None

    @field_validator("bio", "avatar_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            return blank_to_none(value)
        return value


class UserOut(CamelModel):
    """Public user projection; never carries the password hash."""

    user_id: str
    name: str
    email: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    user_id: str
    name: str
    avatar_url: Optional[str] = None


class AuthResponse(CamelModel):
    message: str
    user_id: str
