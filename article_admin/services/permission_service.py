"""Permission service for the article MANAGE capability.

Permissions are article-scoped: every reference endpoint checks MANAGE
against the owning article, never against the reference itself.

Permission Model:
- Article author: may manage the article and its references
- Admin user (User.is_admin): may manage every article
- Anyone else: denied
"""

import logging

from fastapi import HTTPException, status

from ..models.article import Article
from ..models.user import User

logger = logging.getLogger(__name__)


class PermissionService:
    """
    Service class for article permission checks.

    Stateless; the article must already be loaded by the caller so that the
    check itself never touches the database.
    """

    def can_manage_article(self, user: User, article: Article) -> bool:
        """
        Check whether a user holds the MANAGE capability on an article.

        Args:
            user: The authenticated user
            article: The article being managed

        Returns:
            True if the user is the article author or an admin.
        """
        if user.is_admin:
            return True
        return article.author_id is not None and article.author_id == user.id

    def verify_manage_article(self, user: User, article: Article) -> None:
        """
        Verify the MANAGE capability, raising when it is missing.

        Raises:
            HTTPException: 403 if the user may not manage the article
        """
        if not self.can_manage_article(user, article):
            logger.info(
                "User %s denied MANAGE on article %s", user.id, article.id
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. You must be the article author or an admin to manage its references.",
            )


def get_permission_service() -> PermissionService:
    """FastAPI dependency for getting a PermissionService instance."""
    return PermissionService()
