"""
OTP Use Case DTOs
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class IssuedOtp(BaseModel):
    """Freshly issued code; only ever handed to the Notifier, never to the client"""

    email: str
    code: str
    expires_at: datetime


class RequestOtpResponse(BaseModel):
    """Response for OTP request use case (identical whether or not the account exists)"""

    status: str
    message: str


class VerifyOtpResponse(BaseModel):
    """Response for a verified OTP"""

    status: str
    email_verified: bool
    access_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
