"""
Noteworthy Backend - Account Schemas
======================================

What:  Registration, login and profile models.
       `password_hash` has no field here, so it can never be serialized.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(description="Login email; stored lower-cased")
    password: str = Field(description="At least 8 characters")
    full_name: Optional[str] = Field(default=None, description="2-100 characters")


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse
