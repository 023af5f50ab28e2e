"""Pydantic schemas for ArticleReference responses and updates."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReferenceView(BaseModel):
    """Schema for an article reference as returned by every endpoint."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: UUID = Field(
        ...,
        description="Unique reference identifier",
    )
    filename: str = Field(
        ...,
        description="Storage key of the uploaded file",
        examples=["quarterly-report-65f1c2a9b3d4e.pdf"],
    )
    original_filename: str = Field(
        ...,
        description="File name as uploaded by the client",
        examples=["Quarterly report.pdf"],
    )
    mime_type: str = Field(
        ...,
        description="MIME type of the file",
        examples=["application/pdf", "image/png"],
    )
    position: int = Field(
        ...,
        description="Display order among the article's references",
    )


class ReferenceUpdate(BaseModel):
    """
    Schema for partially updating a reference.

    Only display metadata is writable; the storage key and position are
    managed by the upload and reorder endpoints. Unknown fields are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    original_filename: Optional[str] = Field(
        None,
        max_length=255,
        description="New display name for the file",
    )
    mime_type: Optional[str] = Field(
        None,
        max_length=255,
        description="New MIME type for the file",
    )
