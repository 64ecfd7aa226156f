"""
Post Entity

Marketplace listing. Owned by the listing module; the security core only
needs to know whether a post exists before it can be favorited.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, SQLModel

from src.libs.clock import utcnow


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=200)
    content: str
    category: str = Field(default="General", max_length=80)
    posted_by: UUID = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
