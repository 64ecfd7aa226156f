"""
Marketplace Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account role on the marketplace"""

    freelancer = "freelancer"
    customer = "customer"


class OtpOutcome(str, Enum):
    """Result of submitting a one-time passcode"""

    verified = "verified"
    invalid = "invalid"
    expired = "expired"
    exhausted = "exhausted"
    not_found = "not_found"
