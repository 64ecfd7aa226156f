"""
User Entity

Marketplace account holding the credential and public profile fields.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.libs.clock import utcnow
from .enums import UserRole


class User(SQLModel, table=True):
    """
    User entity - marketplace account.

    Business Rules:
    - Email is unique and stored lower-cased
    - Password stored only as a bcrypt hash; the cost factor is part of the hash
    - Registration always assigns role=customer (never trusted from the client)
    - avatar holds the relative url of the current validated upload
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=80)
    email: str = Field(unique=True, index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    role: UserRole = Field(default=UserRole.customer)
    avatar: str = Field(default="", max_length=255)
    email_verified: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_user_role", "role"),)
