"""Pydantic schemas for account creation and login."""

from pydantic import BaseModel, Field


class AccountCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1, max_length=1024)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)


class AccountCreated(BaseModel):
    message: str = "Account created successfully"


class TokenResponse(BaseModel):
    """Login response.

    `token` is the field existing clients read; `access_token` and
    `token_type` follow the OAuth2 bearer convention.
    """

    message: str = "Login successful"
    token: str
    access_token: str
    token_type: str = "bearer"
