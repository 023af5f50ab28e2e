"""Article reference service: queries and mutations for references.

All loading is explicit; no relationship is lazily loaded, so every method
is safe to call from async request handlers.
"""

import logging
from collections import Counter
from typing import Optional, Sequence
from uuid import UUID

from fastapi import Depends, HTTPException, status
from pydantic.alias_generators import to_camel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.article import Article
from ..models.article_reference import ArticleReference
from ..schemas.article_reference import ReferenceUpdate
from ..schemas.violation import Violation
from .reference_validation import (
    DEFAULT_MIME_TYPE,
    ReferenceValidationError,
    validate_reference_fields,
)
from .storage import StorageService

logger = logging.getLogger(__name__)


def invert_order(ordered_ids: Sequence[UUID]) -> dict[UUID, int]:
    """
    Invert a position -> id sequence into an id -> position mapping.

    When an id appears more than once, its last index wins.
    """
    return {reference_id: position for position, reference_id in enumerate(ordered_ids)}


def check_reorder_ids(ordered_ids: Sequence[UUID], current_ids: Sequence[UUID]) -> list[Violation]:
    """
    Check that a submitted order is a permutation of the current reference ids.

    Returns:
        One violation per kind of problem (duplicate, unknown, missing ids)
    """
    violations = []
    duplicates = [str(rid) for rid, count in Counter(ordered_ids).items() if count > 1]
    unknown = [str(rid) for rid in dict.fromkeys(ordered_ids) if rid not in set(current_ids)]
    missing = [str(rid) for rid in current_ids if rid not in set(ordered_ids)]

    if duplicates:
        violations.append(
            Violation(property_path="body", message=f"Duplicate reference ids: {', '.join(duplicates)}")
        )
    if unknown:
        violations.append(
            Violation(
                property_path="body",
                message=f"References do not belong to this article: {', '.join(unknown)}",
            )
        )
    if missing:
        violations.append(
            Violation(property_path="body", message=f"Missing reference ids: {', '.join(missing)}")
        )
    return violations


class ArticleReferenceService:
    """Repository and mutation logic for an article's references."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_article(self, article_id: UUID) -> Article:
        """
        Load an article by ID.

        Raises:
            HTTPException: 404 if the article does not exist
        """
        result = await self.db.execute(select(Article).where(Article.id == article_id))
        article = result.scalar_one_or_none()
        if not article:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Article with ID {article_id} not found",
            )
        return article

    async def get_reference(self, reference_id: UUID) -> ArticleReference:
        """
        Load a reference by ID.

        Raises:
            HTTPException: 404 if the reference does not exist
        """
        result = await self.db.execute(
            select(ArticleReference).where(ArticleReference.id == reference_id)
        )
        reference = result.scalar_one_or_none()
        if not reference:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Reference with ID {reference_id} not found",
            )
        return reference

    async def list_references(self, article_id: UUID) -> list[ArticleReference]:
        """Return an article's references in display order."""
        result = await self.db.execute(
            select(ArticleReference)
            .where(ArticleReference.article_id == article_id)
            .order_by(ArticleReference.position, ArticleReference.created_at)
        )
        return list(result.scalars().all())

    async def create_reference(
        self,
        article: Article,
        filename: str,
        original_filename: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> ArticleReference:
        """
        Create a reference for a file that has already been stored.

        The new reference is placed after the article's highest position, so
        gaps left by deletions never cause duplicate positions.

        Args:
            article: Owning article
            filename: Storage key returned by the storage backend
            original_filename: Client-supplied name; defaults to the storage key
            mime_type: Client-supplied MIME type; defaults to application/octet-stream
        """
        result = await self.db.execute(
            select(func.coalesce(func.max(ArticleReference.position), -1) + 1).where(
                ArticleReference.article_id == article.id
            )
        )
        position = result.scalar_one()

        reference = ArticleReference(
            article_id=article.id,
            filename=filename,
            original_filename=original_filename or filename,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            position=position,
        )
        self.db.add(reference)
        await self.db.flush()
        logger.info("Created reference %s (%s) on article %s", reference.id, filename, article.id)
        return reference

    async def reorder_references(
        self,
        article: Article,
        ordered_ids: Sequence[UUID],
    ) -> list[ArticleReference]:
        """
        Rewrite reference positions from a desired order.

        Args:
            article: Owning article
            ordered_ids: Reference IDs, index = target position

        Returns:
            The article's references in their new order

        Raises:
            ReferenceValidationError: If ordered_ids is not exactly the
                article's reference ids; nothing is changed in that case
        """
        references = await self.list_references(article.id)
        violations = check_reorder_ids(ordered_ids, [reference.id for reference in references])
        if violations:
            raise ReferenceValidationError(violations, detail="Invalid reference order")

        positions = invert_order(ordered_ids)
        for reference in references:
            reference.position = positions[reference.id]
        await self.db.flush()
        logger.info("Reordered %d references on article %s", len(references), article.id)

        return sorted(references, key=lambda reference: reference.position)

    async def update_reference(
        self,
        reference: ArticleReference,
        update: ReferenceUpdate,
    ) -> ArticleReference:
        """
        Merge supplied fields onto a reference and validate the result.

        Fields absent from the update keep their current value. The reference
        is only modified when the merged values are valid.

        Raises:
            ReferenceValidationError: If the merged reference is invalid
        """
        changes = update.model_dump(exclude_unset=True)
        merged = {
            "original_filename": reference.original_filename,
            "mime_type": reference.mime_type,
        }
        merged.update(changes)

        violations = validate_reference_fields(
            {to_camel(field): value for field, value in merged.items()}
        )
        if violations:
            raise ReferenceValidationError(violations)

        for field, value in changes.items():
            setattr(reference, field, value)
        await self.db.flush()
        logger.info("Updated reference %s fields: %s", reference.id, ", ".join(changes) or "none")
        return reference

    async def delete_reference(
        self,
        reference: ArticleReference,
        storage: StorageService,
    ) -> None:
        """
        Delete a reference and its stored file.

        The stored file is removed first; if that fails the storage error
        propagates and the row is left untouched.
        """
        storage.delete_file(reference.file_path)
        await self.db.delete(reference)
        await self.db.flush()
        logger.info("Deleted reference %s and file %s", reference.id, reference.file_path)


def get_reference_service(db: AsyncSession = Depends(get_db)) -> ArticleReferenceService:
    """FastAPI dependency for getting an ArticleReferenceService instance."""
    return ArticleReferenceService(db)
