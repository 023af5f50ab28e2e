"""Validation rules for article reference uploads and updates.

Every check collects violations instead of stopping at the first one, so a
single 400 response tells the client everything that is wrong.
"""

from typing import Iterable, Mapping, Optional

from pydantic import ValidationError

from ..schemas.violation import Violation

# Maximum reference size (5 MB)
MAX_REFERENCE_SIZE = 5 * 1000 * 1000

DEFAULT_MIME_TYPE = "application/octet-stream"

ALLOWED_MIME_TYPES = (
    "image/*",
    "application/pdf",
    "application/msword",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
)

UPLOAD_FIELD = "reference"
MAX_FIELD_LENGTH = 255


class ReferenceValidationError(Exception):
    """Raised with the full list of violations; rendered as a 400 response."""

    def __init__(self, violations: list[Violation], detail: str = "Validation Failed"):
        super().__init__(detail)
        self.detail = detail
        self.violations = violations


def normalize_mime_type(content_type: Optional[str]) -> str:
    """
    Reduce a Content-Type header value to its bare ``type/subtype``.

    Parameters such as ``charset`` are dropped; an empty value becomes
    application/octet-stream.
    """
    mime_type = (content_type or "").split(";", 1)[0].strip().lower()
    return mime_type or DEFAULT_MIME_TYPE


def is_allowed_mime_type(mime_type: str, allowed: Iterable[str] = ALLOWED_MIME_TYPES) -> bool:
    """Check a MIME type against an allow-list supporting ``type/*`` wildcards."""
    mime_type = mime_type.lower()
    for pattern in allowed:
        if pattern.endswith("/*"):
            if mime_type.startswith(pattern[:-1]):
                return True
        elif mime_type == pattern:
            return True
    return False


def _format_size(size: int) -> str:
    return f"{size / 1000 / 1000:.2f} MB"


def validate_uploaded_reference(
    present: bool,
    size: int = 0,
    mime_type: Optional[str] = None,
    original_filename: Optional[str] = None,
) -> list[Violation]:
    """
    Validate an uploaded reference file.

    Args:
        present: Whether the request carried a file under the upload field
        size: File size in bytes
        mime_type: MIME type of the file, without parameters
        original_filename: Client-supplied file name, if any

    Returns:
        List of violations, empty when the file is acceptable
    """
    if not present:
        return [Violation(property_path=UPLOAD_FIELD, message="Please select a file to upload.")]

    violations = []
    if original_filename and len(original_filename) > MAX_FIELD_LENGTH:
        violations.append(
            Violation(
                property_path=UPLOAD_FIELD,
                message=(
                    f"The file name is too long. It should have {MAX_FIELD_LENGTH} "
                    "characters or less."
                ),
            )
        )

    if size > MAX_REFERENCE_SIZE:
        violations.append(
            Violation(
                property_path=UPLOAD_FIELD,
                message=(
                    f"The file is too large ({_format_size(size)}). "
                    f"Allowed maximum size is {_format_size(MAX_REFERENCE_SIZE)}."
                ),
            )
        )

    mime_type = mime_type or DEFAULT_MIME_TYPE
    if not is_allowed_mime_type(mime_type):
        violations.append(
            Violation(
                property_path=UPLOAD_FIELD,
                message=(
                    f'The mime type of the file is invalid ("{mime_type}"). '
                    f"Allowed mime types are {', '.join(ALLOWED_MIME_TYPES)}."
                ),
            )
        )
    return violations


def validate_reference_fields(values: Mapping[str, Optional[str]]) -> list[Violation]:
    """
    Validate the mutable fields of a reference after an update was merged.

    Args:
        values: Mapping of JSON field name (camelCase) to merged value

    Returns:
        List of violations, empty when the merged reference is valid
    """
    violations = []
    for field, value in values.items():
        if value is None or not value.strip():
            violations.append(Violation(property_path=field, message="This value should not be blank."))
        elif len(value) > MAX_FIELD_LENGTH:
            violations.append(
                Violation(
                    property_path=field,
                    message=f"This value is too long. It should have {MAX_FIELD_LENGTH} characters or less.",
                )
            )
    return violations


def violations_from_pydantic(exc: ValidationError) -> list[Violation]:
    """Convert a pydantic ValidationError into violations."""
    return [
        Violation(
            property_path=".".join(str(part) for part in error["loc"]) or "body",
            message=error["msg"],
        )
        for error in exc.errors()
    ]
