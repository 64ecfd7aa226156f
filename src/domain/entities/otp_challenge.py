"""
OtpChallenge Entity

One-time passcode challenges bound to an email address.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.libs.clock import utcnow


class OtpChallenge(SQLModel, table=True):
    """
    OtpChallenge entity - short-lived numeric passcode.

    Business Rules:
    - Only the HMAC-SHA256 digest of the code is stored
    - Expires 10 minutes after issuance by default
    - attempts only grows and stops at the configured maximum (3)
    - At most one unused challenge per email (partial unique index)
    - Issuing a new challenge marks the previous unused one as used
    """

    __tablename__ = "otp_challenges"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    email: str = Field(max_length=255)
    code_hash: str = Field(max_length=64)  # HMAC-SHA256 hex digest

    attempts: int = Field(default=0)
    used: bool = Field(default=False)

    # Timestamps
    expires_at: datetime = Field(sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index(
            "uq_otp_active_email",
            "email",
            unique=True,
            sqlite_where=text("used = 0"),
            postgresql_where=text("used = false"),
        ),
        Index("idx_otp_email", "email"),
        Index("idx_otp_expires_at", "expires_at"),
    )
