"""Article reference admin API endpoints.

Provides endpoints for uploading files to an article, listing and reordering
them, downloading, updating their metadata and deleting them. All endpoints
require authentication and the MANAGE capability on the owning article.
"""

import logging
from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import Response
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.article_reference import ReferenceUpdate, ReferenceView
from ..schemas.violation import ViolationList
from ..services.auth_service import get_current_user
from ..services.download_strategy import DownloadStrategy, get_download_strategy
from ..services.permission_service import PermissionService, get_permission_service
from ..services.reference_service import ArticleReferenceService, get_reference_service
from ..services.reference_validation import (
    ReferenceValidationError,
    normalize_mime_type,
    validate_uploaded_reference,
    violations_from_pydantic,
)
from ..services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/article", tags=["Article References"])

_reference_order_adapter = TypeAdapter(List[UUID])


@router.post(
    "/{article_id}/references",
    response_model=ReferenceView,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a reference",
    description="Upload a file and attach it to an article as a reference.",
    responses={
        201: {"description": "Reference uploaded successfully"},
        400: {"model": ViolationList, "description": "Missing, oversized or disallowed file"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Article not found"},
    },
)
async def upload_article_reference(
    article_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    reference: Optional[UploadFile] = File(None, description="The file to attach"),
    db: AsyncSession = Depends(get_db),
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
    storage: StorageService = Depends(get_storage_service),
) -> ReferenceView:
    """
    Upload a file as a reference of an article.

    - **reference**: The file (multipart form data)

    Maximum file size: 5 MB. Allowed types: images, PDF, Word, Excel,
    PowerPoint and plain text. Every broken constraint is reported.
    """
    article = await references.get_article(article_id)
    permissions.verify_manage_article(current_user, article)

    content = await reference.read() if reference is not None else b""
    content_type = normalize_mime_type(reference.content_type if reference is not None else None)

    violations = validate_uploaded_reference(
        present=reference is not None,
        size=len(content),
        mime_type=content_type,
        original_filename=reference.filename if reference is not None else None,
    )
    if violations:
        logger.info(
            "Rejected reference upload on article %s: %d violation(s)",
            article.id,
            len(violations),
        )
        raise ReferenceValidationError(violations)

    filename = storage.upload_article_reference(
        data=content,
        original_filename=reference.filename,
        content_type=content_type,
    )

    article_reference = await references.create_reference(
        article,
        filename=filename,
        original_filename=reference.filename,
        mime_type=content_type,
    )
    await db.commit()

    return article_reference


@router.get(
    "/{article_id}/references",
    response_model=List[ReferenceView],
    summary="List references",
    description="Get all references of an article in display order.",
    responses={
        200: {"description": "References retrieved successfully"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Article not found"},
    },
)
async def list_article_references(
    article_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
) -> List[ReferenceView]:
    """Return every reference of the article ordered by position."""
    article = await references.get_article(article_id)
    permissions.verify_manage_article(current_user, article)

    return await references.list_references(article.id)


@router.post(
    "/{article_id}/references/reorder",
    response_model=List[ReferenceView],
    summary="Reorder references",
    description="Set the display order of an article's references.",
    responses={
        200: {"description": "References reordered successfully"},
        400: {"description": "Invalid body, or ids that do not match the article's references"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Article not found"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {
                    "schema": {"type": "array", "items": {"type": "string", "format": "uuid"}},
                }
            },
        }
    },
)
async def reorder_article_references(
    article_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
) -> List[ReferenceView]:
    """
    Reorder an article's references.

    The body is a JSON array of every reference id of the article; the index
    of an id becomes its new position.
    """
    article = await references.get_article(article_id)
    permissions.verify_manage_article(current_user, article)

    try:
        ordered_ids = _reference_order_adapter.validate_json(await request.body())
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid body",
        )

    reordered = await references.reorder_references(article, ordered_ids)
    await db.commit()

    return reordered


@router.get(
    "/references/{reference_id}/download",
    summary="Download a reference",
    description="Redirect to a signed URL for the file, or stream it, depending on configuration.",
    response_class=Response,
    responses={
        200: {"description": "File streamed", "content": {"application/octet-stream": {}}},
        302: {"description": "Redirect to a signed download URL"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Reference not found"},
    },
)
async def download_article_reference(
    reference_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
    strategy: DownloadStrategy = Depends(get_download_strategy),
) -> Response:
    """
    Download a reference file.

    The attachment filename is the reference's original filename.
    """
    reference = await references.get_reference(reference_id)
    article = await references.get_article(reference.article_id)
    permissions.verify_manage_article(current_user, article)

    return strategy.build_response(reference)


@router.delete(
    "/references/{reference_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reference",
    description="Delete the stored file and the reference record.",
    responses={
        204: {"description": "Reference deleted successfully"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Reference not found"},
        500: {"description": "Storage backend error, reference kept"},
    },
)
async def delete_article_reference(
    reference_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
    storage: StorageService = Depends(get_storage_service),
) -> None:
    """
    Delete a reference.

    The file is removed from storage first; the record is only deleted once
    that succeeded. This action is irreversible.
    """
    reference = await references.get_reference(reference_id)
    article = await references.get_article(reference.article_id)
    permissions.verify_manage_article(current_user, article)

    await references.delete_reference(reference, storage)
    await db.commit()

    return None


@router.put(
    "/references/{reference_id}",
    response_model=ReferenceView,
    summary="Update a reference",
    description="Partially update the display metadata of a reference.",
    responses={
        200: {"description": "Reference updated successfully"},
        400: {"model": ViolationList, "description": "Validation error"},
        401: {"description": "Not authenticated"},
        403: {"description": "Access denied"},
        404: {"description": "Reference not found"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": ReferenceUpdate.model_json_schema(by_alias=True)},
            },
        }
    },
)
async def update_article_reference(
    reference_id: UUID,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
    references: ArticleReferenceService = Depends(get_reference_service),
    permissions: PermissionService = Depends(get_permission_service),
) -> ReferenceView:
    """
    Update reference metadata.

    - **originalFilename**: New display name (optional)
    - **mimeType**: New MIME type (optional)

    Fields not present in the body are left unchanged. The storage key and
    position cannot be changed here.
    """
    reference = await references.get_reference(reference_id)
    article = await references.get_article(reference.article_id)
    permissions.verify_manage_article(current_user, article)

    try:
        update = ReferenceUpdate.model_validate_json(await request.body())
    except ValidationError as e:
        raise ReferenceValidationError(violations_from_pydantic(e))

    reference = await references.update_reference(reference, update)
    await db.commit()

    return reference
