"""Request and response bodies for the auth routes."""

from pydantic import BaseModel, EmailStr


class LoginPayload(BaseModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Bearer token returned by a successful login."""

    access_token: str
    token_type: str = "Bearer"


class MessageResponse(BaseModel):
    """Human-readable outcome of register and confirm."""

    message: str
