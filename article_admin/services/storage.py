"""Storage backend selection."""

from typing import Union

from ..config import settings
from .local_storage_service import LocalStorageService
from .minio_service import MinIOService, get_minio_service

StorageService = Union[MinIOService, LocalStorageService]

_local_storage_service = LocalStorageService()


def get_storage_service() -> StorageService:
    """
    FastAPI dependency returning the configured storage backend.

    Returns:
        The MinIO service when STORAGE_BACKEND=minio, otherwise local storage
    """
    if settings.storage_backend == "local":
        return _local_storage_service
    return get_minio_service()
