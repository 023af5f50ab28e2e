"""Business logic services."""

from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_user_by_email,
)
from .download_strategy import (
    DownloadStrategy,
    RedirectDownloadStrategy,
    StreamDownloadStrategy,
    get_download_strategy,
)
from .local_storage_service import LocalStorageService
from .minio_service import (
    MinIOService,
    MinIOServiceError,
    get_minio_service,
    minio_service,
)
from .permission_service import PermissionService, get_permission_service
from .reference_service import ArticleReferenceService, get_reference_service, invert_order
from .reference_validation import ReferenceValidationError
from .storage import get_storage_service
from .storage_base import StorageServiceError

__all__ = [
    # Auth
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_user_by_email",
    # Storage
    "LocalStorageService",
    "MinIOService",
    "MinIOServiceError",
    "StorageServiceError",
    "get_minio_service",
    "get_storage_service",
    "minio_service",
    # Downloads
    "DownloadStrategy",
    "RedirectDownloadStrategy",
    "StreamDownloadStrategy",
    "get_download_strategy",
    # Permissions
    "PermissionService",
    "get_permission_service",
    # References
    "ArticleReferenceService",
    "ReferenceValidationError",
    "get_reference_service",
    "invert_order",
]
