"""Pydantic schemas for validation failure responses."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Violation(BaseModel):
    """A single broken constraint."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    property_path: str = Field(
        ...,
        description="Field the constraint applies to",
        examples=["reference", "originalFilename"],
    )
    message: str = Field(
        ...,
        description="Human readable description of the violation",
    )


class ViolationList(BaseModel):
    """Body of every 400 response caused by validation."""

    detail: str = Field(
        "Validation Failed",
        description="Summary of the failure",
    )
    violations: list[Violation] = Field(
        default_factory=list,
        description="Every constraint that failed",
    )
