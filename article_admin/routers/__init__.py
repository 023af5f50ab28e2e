"""API routers package.

This package contains all FastAPI routers for the application.
Each router handles a specific domain of the API.
"""

from .article_references import router as article_references_router
from .auth import router as auth_router

__all__ = [
    "article_references_router",
    "auth_router",
]
