"""
Pydantic schemas for user/auth endpoints.
"""
from typing import Optional
from datetime import datetime
from email_validator import validate_email, EmailNotValidError
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class RegisterRequest(BaseModel):
    """
    Request schema for user registration.

    Blank fields pass validation here; the route answers them with a 400.
    """
    username: Optional[str] = Field(None, max_length=50, description="Unique username")
    email: Optional[str] = Field(None, description="User's email address")
    password: Optional[str] = Field(None, description="User's password")

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: Optional[str]) -> Optional[str]:
        if not v or not v.strip():
            return v
        try:
            return validate_email(v.strip(), check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: Optional[str]) -> Optional[str]:
        """bcrypt only reads the first 72 bytes."""
        if v and len(v.encode("utf-8")) > 72:
            raise ValueError("Password too long (bcrypt limit 72 bytes)")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "username": "alice",
                "email": "alice@example.com",
                "password": "SecurePass123"
            }
        }


class LoginRequest(BaseModel):
    """Request schema for user login."""
    email: Optional[str] = Field(None, description="User's email address")
    password: Optional[str] = Field(None, description="User's password")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "alice@example.com",
                "password": "SecurePass123"
            }
        }


class RefreshTokenRequest(BaseModel):
    """Body fallback for clients that cannot send the refresh cookie."""
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    class Config:
        populate_by_name = True


class UserResponse(BaseModel):
    """Public profile. Never carries the password hash or refresh token."""
    id: int
    username: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
