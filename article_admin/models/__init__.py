"""SQLAlchemy ORM models package."""

from .article import Article
from .article_reference import ARTICLE_REFERENCE_DIR, ArticleReference
from .user import User

__all__ = [
    "ARTICLE_REFERENCE_DIR",
    "Article",
    "ArticleReference",
    "User",
]
