"""ArticleReference SQLAlchemy model for files attached to articles."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from ..database import Base

# Directory (object-name prefix) under which reference files are stored
ARTICLE_REFERENCE_DIR = "article_reference"


class ArticleReference(Base):
    """
    ArticleReference model representing a file attached to an article.

    The bytes live in the configured storage backend under ``file_path``;
    this row only carries the storage key and display metadata.

    Attributes:
        id: Unique identifier (UUID)
        article_id: FK to the owning article
        filename: Storage key generated at upload; never changes
        original_filename: Client-supplied name, used for display and downloads
        mime_type: MIME type captured at upload time
        position: Display order among the article's references
        created_at: Timestamp when the reference was uploaded
    """

    __tablename__ = "ArticleReferences"

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    article_id = Column(
        Uuid,
        ForeignKey("Articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # File metadata
    filename = Column(
        String(255),
        nullable=False,
    )
    original_filename = Column(
        String(255),
        nullable=False,
    )
    mime_type = Column(
        String(255),
        nullable=False,
        default="application/octet-stream",
    )
    position = Column(
        Integer,
        nullable=False,
        default=0,
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    @property
    def file_path(self) -> str:
        """Object name of the stored file in the storage backend."""
        return f"{ARTICLE_REFERENCE_DIR}/{self.filename}"

    def __repr__(self) -> str:
        """String representation of ArticleReference."""
        return f"<ArticleReference(id={self.id}, filename={self.filename})>"
