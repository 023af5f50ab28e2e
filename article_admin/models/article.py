"""Article SQLAlchemy model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from ..database import Base


class Article(Base):
    """
    Article model. Owns an ordered set of ArticleReference rows.

    Attributes:
        id: Unique identifier (UUID)
        title: Article title
        author_id: FK to the user who wrote the article
        created_at: Timestamp when article was created
        updated_at: Timestamp when article was last updated
    """

    __tablename__ = "Articles"

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    title = Column(
        String(255),
        nullable=False,
    )
    author_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Timestamps
    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Article(id={self.id}, title={self.title[:30] if self.title else ''})>"
