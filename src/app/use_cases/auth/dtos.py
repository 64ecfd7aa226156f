"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the auth domain.
Provides type safety and clear contracts between layers.
"""

from typing import Optional
from pydantic import BaseModel


# ============================================================================
# Command DTOs
# ============================================================================


class RegisterCommand(BaseModel):
    """
    Register command - represents validated registration intent

    Created by the API layer after request validation passes.
    """

    name: str
    email: str
    password: str
    phone: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class UserInfo(BaseModel):
    """Public account information in authentication responses"""

    id: str
    name: str
    email: str
    role: str
    avatar: str = ""


class RegisterResponse(BaseModel):
    """Response for account registration use case"""

    user: UserInfo
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(BaseModel):
    """Response for user login use case"""

    user: UserInfo
    access_token: str
    token_type: str = "bearer"
    expires_in: int
