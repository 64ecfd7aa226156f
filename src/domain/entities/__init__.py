"""
Marketplace Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import OtpOutcome, UserRole

# Export all entities
from .user import User
from .post import Post
from .favorite import Favorite
from .otp_challenge import OtpChallenge
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "UserRole",
    "OtpOutcome",
    # Entities
    "User",
    "Post",
    "Favorite",
    "OtpChallenge",
    "AuditEvent",
]
