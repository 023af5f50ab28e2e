"""Download strategies for article references.

Two ways of serving a reference file from the same route:

- RedirectDownloadStrategy: 302 to a presigned URL; the object store serves
  the bytes and applies the signed Content-Type/Content-Disposition.
- StreamDownloadStrategy: the API reads the object chunk by chunk and proxies
  it in the response body.

The active strategy is chosen by REFERENCE_DOWNLOAD_STRATEGY.
"""

import logging
import unicodedata
from datetime import timedelta
from urllib.parse import quote

from fastapi import Depends, status
from fastapi.responses import RedirectResponse, Response, StreamingResponse

from ..config import settings
from ..models.article_reference import ArticleReference
from .storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)


def _ascii_fallback(filename: str) -> str:
    """Fold a filename to printable ASCII for the plain ``filename`` parameter."""
    folded = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    folded = "".join(char for char in folded if char.isprintable())
    return folded.strip() or "download"


def make_attachment_disposition(filename: str) -> str:
    """
    Build an ``attachment`` Content-Disposition value for a filename.

    A quoted ``filename`` is always present. Names that are not plain
    printable ASCII also get the RFC 5987 ``filename*`` form, with an ASCII
    approximation in ``filename`` for clients that ignore it.
    """
    fallback = _ascii_fallback(filename)
    quoted = fallback.replace("\\", "\\\\").replace('"', '\\"')
    disposition = f'attachment; filename="{quoted}"'
    if fallback != filename:
        disposition += f"; filename*=utf-8''{quote(filename)}"
    return disposition


class DownloadStrategy:
    """Turn a reference into the HTTP response that delivers its file."""

    def __init__(self, storage: StorageService):
        self.storage = storage

    def build_response(self, reference: ArticleReference) -> Response:
        raise NotImplementedError


class RedirectDownloadStrategy(DownloadStrategy):
    """Redirect the client to a time-limited signed URL."""

    def __init__(self, storage: StorageService, expiry: timedelta = timedelta(minutes=30)):
        super().__init__(storage)
        self.expiry = expiry

    def build_response(self, reference: ArticleReference) -> Response:
        logger.debug("Signing download URL for reference %s", reference.id)
        url = self.storage.get_presigned_download_url(
            object_name=reference.file_path,
            expiry=self.expiry,
            response_headers={
                "response-content-type": reference.mime_type,
                "response-content-disposition": make_attachment_disposition(
                    reference.original_filename
                ),
            },
        )
        return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


class StreamDownloadStrategy(DownloadStrategy):
    """Proxy the stored bytes through the API in chunks."""

    def __init__(self, storage: StorageService, chunk_size: int = 64 * 1024):
        super().__init__(storage)
        self.chunk_size = chunk_size

    def build_response(self, reference: ArticleReference) -> Response:
        logger.debug("Streaming download of reference %s", reference.id)
        chunks = self.storage.open_stream(reference.file_path, chunk_size=self.chunk_size)
        return StreamingResponse(
            chunks,
            media_type=reference.mime_type,
            headers={
                "Content-Disposition": make_attachment_disposition(reference.original_filename),
            },
        )


def get_download_strategy(
    storage: StorageService = Depends(get_storage_service),
) -> DownloadStrategy:
    """FastAPI dependency returning the configured download strategy."""
    if settings.reference_download_strategy == "stream":
        return StreamDownloadStrategy(storage, chunk_size=settings.reference_stream_chunk_size)
    return RedirectDownloadStrategy(
        storage,
        expiry=timedelta(minutes=settings.reference_url_expiry_minutes),
    )
