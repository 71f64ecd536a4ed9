"""Authentication API models."""
from pydantic import BaseModel, Field
from typing import Optional


class SignInRequest(BaseModel):
    """Magic link request."""

    email: str = Field(max_length=320)


class AuthCallbackRequest(BaseModel):
    """Token handed back by the magic link redirect."""

    access_token: str = Field(min_length=1)


class IdentityView(BaseModel):
    id: str
    email: Optional[str] = None


class AuthStatus(BaseModel):
    """Whether cloud sync is available and who is signed in."""

    configured: bool
    signed_in: bool
    identity: Optional[IdentityView] = None


class AuthMessage(BaseModel):
    """Human-readable result of an auth action."""

    message: str
    status: AuthStatus
