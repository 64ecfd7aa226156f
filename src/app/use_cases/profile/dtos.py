from typing import Optional

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    """Public profile of the authenticated user"""

    id: str
    name: str
    email: str
    role: str
    avatar: str
    email_verified: bool


class AvatarUploadResponse(BaseModel):
    """Response for a validated avatar upload"""

    avatar: str
    content_type: str
    size: int
    previous_avatar: Optional[str] = None
