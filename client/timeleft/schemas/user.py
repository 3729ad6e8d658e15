"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    MEMBER = "user"
    ADMIN = "admin"


class User(BaseModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    bio: Optional[str] = None
    city: Optional[str] = None
    photo: Optional[str] = None
    role: UserRole = UserRole.MEMBER
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserSummary(BaseModel):
    """A user as populated inside another record. Only the id is guaranteed."""

    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None
    role: Optional[UserRole] = None

    model_config = {"populate_by_name": True, "frozen": True}


class LoginCredentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterData(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    bio: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    photo: Optional[str] = None

    model_config = {"str_strip_whitespace": True}


class UpdateProfileData(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    bio: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    photo: Optional[str] = None

    model_config = {"str_strip_whitespace": True}


class AuthResponse(BaseModel):
    token: str
    user: User
