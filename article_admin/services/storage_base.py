"""Shared pieces of the storage backends.

Both backends store reference files under the same object names and expose
the same methods, so routers and download strategies never need to know
which one is configured:

- upload_article_reference(data, original_filename, content_type) -> filename
- open_stream(object_name) -> iterator of byte chunks
- delete_file(object_name)
- get_presigned_download_url(object_name, expiry, response_headers) -> url
"""

import mimetypes
import re
import unicodedata
from pathlib import PurePosixPath
from typing import Iterator, Optional
from uuid import uuid4

# Matches the length of the ArticleReference.filename column
MAX_FILENAME_LENGTH = 255
MAX_EXTENSION_LENGTH = 16


class StorageServiceError(Exception):
    """Raised when a storage backend cannot complete an operation."""

    pass


def slugify(value: str) -> str:
    """
    Turn a file stem into a lowercase ASCII slug.

    Accented characters are folded to ASCII, anything else that is not
    alphanumeric collapses into single dashes.
    """
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return value or "file"


def generate_reference_filename(
    original_filename: Optional[str],
    content_type: Optional[str] = None,
) -> str:
    """
    Generate a unique storage filename for an uploaded reference.

    Format: {slug-of-original-stem}-{13 hex chars}{extension}

    The extension is guessed from the content type first and falls back to
    the extension of the original filename. The slug is shortened so the
    result never exceeds MAX_FILENAME_LENGTH; overlong extensions are dropped.

    Args:
        original_filename: File name supplied by the client, if any
        content_type: MIME type supplied by the client, if any

    Returns:
        Generated filename, e.g. "quarterly-report-65f1c2a9b3d4e.pdf"
    """
    # Clean the filename to remove any client-side directories
    name = PurePosixPath((original_filename or "").replace("\\", "/")).name
    stem = PurePosixPath(name).stem
    extension = mimetypes.guess_extension(content_type) if content_type else None
    if not extension:
        extension = PurePosixPath(name).suffix.lower()
    if len(extension) > MAX_EXTENSION_LENGTH:
        extension = ""
    unique_id = uuid4().hex[:13]
    max_slug = MAX_FILENAME_LENGTH - len(unique_id) - len(extension) - 1
    slug = slugify(stem)[:max_slug].rstrip("-") or "file"
    return f"{slug}-{unique_id}{extension}"


def iter_chunks(readable, chunk_size: int) -> Iterator[bytes]:
    """
    Yield chunks from a file-like object until it is exhausted.

    The object is closed afterwards; objects exposing ``release_conn``
    (urllib3 responses returned by MinIO) also give their connection back
    to the pool.
    """
    try:
        while True:
            chunk = readable.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        readable.close()
        release_conn = getattr(readable, "release_conn", None)
        if release_conn is not None:
            release_conn()
