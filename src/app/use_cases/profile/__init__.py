"""
Profile Use Cases
"""

from .get_profile_use_case import GetProfileUseCase
from .upload_avatar_use_case import UploadAvatarUseCase
from .dtos import AvatarUploadResponse, ProfileResponse

__all__ = [
    "GetProfileUseCase",
    "UploadAvatarUseCase",
    "ProfileResponse",
    "AvatarUploadResponse",
]
