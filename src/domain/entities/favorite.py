"""
Favorite Entity

Membership of a post in a user's favorites set.
"""

from datetime import datetime
from uuid import UUID

from sqlmodel import Column, DateTime, Field, SQLModel

from src.libs.clock import utcnow


class Favorite(SQLModel, table=True):
    """
    Favorite entity - one (user, post) edge.

    Business Rules:
    - The composite primary key makes duplicate pairs impossible, even for
      concurrent inserts
    - Ordering carries no meaning
    """

    __tablename__ = "favorites"

    user_id: UUID = Field(foreign_key="users.id", primary_key=True)
    post_id: UUID = Field(foreign_key="posts.id", primary_key=True)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
