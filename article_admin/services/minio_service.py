"""MinIO service for article reference storage.

This service stores reference files in a MinIO (S3 compatible) bucket and
produces presigned, time-limited download URLs whose response headers
(content type and content disposition) are embedded in the signature.
"""

import io
import logging
from datetime import timedelta
from typing import Iterator, Optional

from minio import Minio
from minio.error import S3Error

from ..config import settings
from ..models.article_reference import ARTICLE_REFERENCE_DIR
from .storage_base import StorageServiceError, generate_reference_filename, iter_chunks

logger = logging.getLogger(__name__)


class MinIOServiceError(StorageServiceError):
    """Custom exception for MinIO service errors."""

    pass


class MinIOService:
    """
    Service for interacting with MinIO object storage.

    Provides methods for reference upload, streaming, deletion, and presigned
    URL generation. Creates the bucket lazily on the first upload.
    """

    DEFAULT_URL_EXPIRY = timedelta(minutes=30)

    def __init__(self, bucket: Optional[str] = None):
        """Initialize the service; the MinIO client is created on first use."""
        self.bucket = bucket or settings.minio_bucket
        self._client: Optional[Minio] = None
        self._initialized = False

    @property
    def client(self) -> Minio:
        """
        Get the MinIO client instance, creating it if necessary.

        Raises:
            MinIOServiceError: If client creation fails
        """
        if self._client is None:
            try:
                self._client = Minio(
                    endpoint=settings.minio_endpoint,
                    access_key=settings.minio_access_key,
                    secret_key=settings.minio_secret_key,
                    secure=settings.minio_secure,
                )
            except Exception as e:
                raise MinIOServiceError(f"Failed to create MinIO client: {str(e)}")
        return self._client

    def ensure_bucket_exists(self) -> None:
        """
        Ensure the reference bucket exists, creating it if necessary.

        Raises:
            MinIOServiceError: If bucket creation fails
        """
        if self._initialized:
            return

        try:
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
                logger.info("Created MinIO bucket '%s'", self.bucket)
        except S3Error as e:
            raise MinIOServiceError(
                f"Failed to create bucket '{self.bucket}': {str(e)}"
            )

        self._initialized = True

    def upload_article_reference(
        self,
        data: bytes,
        original_filename: Optional[str],
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload a reference file under a freshly generated filename.

        Args:
            data: File contents
            original_filename: Client-supplied name, used to build the key
            content_type: MIME type stored with the object

        Returns:
            The generated filename (storage key, without directory)

        Raises:
            MinIOServiceError: If upload fails
        """
        self.ensure_bucket_exists()

        filename = generate_reference_filename(original_filename, content_type)
        object_name = f"{ARTICLE_REFERENCE_DIR}/{filename}"

        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=object_name,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            raise MinIOServiceError(f"Failed to upload file: {str(e)}")

        return filename

    def open_stream(self, object_name: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Open an object for incremental reading.

        The object is requested immediately so that a missing key fails here,
        before any response header is sent; the bytes are only read as the
        returned iterator is consumed.

        Args:
            object_name: Object key (path) in the bucket
            chunk_size: Maximum size of each yielded chunk

        Returns:
            Iterator over the object's bytes

        Raises:
            MinIOServiceError: If the object cannot be opened
        """
        try:
            response = self.client.get_object(
                bucket_name=self.bucket,
                object_name=object_name,
            )
        except S3Error as e:
            raise MinIOServiceError(f"Failed to open file: {str(e)}")
        return iter_chunks(response, chunk_size)

    def delete_file(self, object_name: str) -> bool:
        """
        Delete a file from MinIO.

        Raises:
            MinIOServiceError: If deletion fails
        """
        try:
            self.client.remove_object(
                bucket_name=self.bucket,
                object_name=object_name,
            )
            return True
        except S3Error as e:
            raise MinIOServiceError(f"Failed to delete file: {str(e)}")

    def get_presigned_download_url(
        self,
        object_name: str,
        expiry: Optional[timedelta] = None,
        response_headers: Optional[dict] = None,
    ) -> str:
        """
        Generate a presigned URL for downloading a file.

        Args:
            object_name: Object key (path) in the bucket
            expiry: URL expiration time (default: 30 minutes)
            response_headers: Signed response header overrides, e.g.
                ``response-content-type`` and ``response-content-disposition``

        Returns:
            Presigned URL string

        Raises:
            MinIOServiceError: If URL generation fails
        """
        if expiry is None:
            expiry = self.DEFAULT_URL_EXPIRY

        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=object_name,
                expires=expiry,
                response_headers=response_headers,
            )
        except S3Error as e:
            raise MinIOServiceError(f"Failed to generate download URL: {str(e)}")


# Global service instance
minio_service = MinIOService()


def get_minio_service() -> MinIOService:
    """
    FastAPI dependency for getting the MinIO service instance.

    Returns:
        MinIO service instance
    """
    return minio_service
