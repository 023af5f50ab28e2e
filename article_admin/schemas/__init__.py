"""Pydantic schemas package."""

from .article_reference import ReferenceUpdate, ReferenceView
from .user import UserResponse
from .violation import Violation, ViolationList

__all__ = [
    "ReferenceUpdate",
    "ReferenceView",
    "UserResponse",
    "Violation",
    "ViolationList",
]
