"""Local filesystem storage for article references.

Stores files below a base directory using the same object names as the
MinIO backend. There is no signing service, so downloads must be streamed
through the API.
"""

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Iterator, Optional

from ..config import settings
from ..models.article_reference import ARTICLE_REFERENCE_DIR
from .storage_base import StorageServiceError, generate_reference_filename, iter_chunks

logger = logging.getLogger(__name__)


class LocalStorageService:
    """Store reference files in a directory on the local filesystem."""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or settings.local_storage_path)

    def _resolve(self, object_name: str) -> Path:
        """Map an object name to a path, refusing names that escape the base directory."""
        base = self.base_path.resolve()
        path = (base / object_name).resolve()
        if base != path and base not in path.parents:
            raise StorageServiceError(f"Invalid object name: {object_name}")
        return path

    def upload_article_reference(
        self,
        data: bytes,
        original_filename: Optional[str],
        content_type: str = "application/octet-stream",
    ) -> str:
        """Write a reference file and return its generated filename."""
        filename = generate_reference_filename(original_filename, content_type)
        path = self._resolve(f"{ARTICLE_REFERENCE_DIR}/{filename}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageServiceError(f"Failed to upload file: {str(e)}")
        return filename

    def open_stream(self, object_name: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Open a stored file and return an iterator over its bytes."""
        try:
            handle = open(self._resolve(object_name), "rb")
        except OSError as e:
            raise StorageServiceError(f"Failed to open file: {str(e)}")
        return iter_chunks(handle, chunk_size)

    def delete_file(self, object_name: str) -> bool:
        """Delete a stored file. A file that is already gone counts as deleted."""
        try:
            os.remove(self._resolve(object_name))
        except FileNotFoundError:
            logger.info("File %s was already deleted", object_name)
        except OSError as e:
            raise StorageServiceError(f"Failed to delete file: {str(e)}")
        return True

    def get_presigned_download_url(
        self,
        object_name: str,
        expiry: Optional[timedelta] = None,
        response_headers: Optional[dict] = None,
    ) -> str:
        raise StorageServiceError("Local storage cannot generate signed download URLs")
