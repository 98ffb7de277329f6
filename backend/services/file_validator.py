"""
Validation for uploaded CV files.

Size and extension violations block the upload.  An unrecognized file header
is only logged as a warning: browsers and phones report inconsistent content
types and some exported CVs carry unusual headers.
"""

import logging
from pathlib import Path
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)

# Allowed file extensions for CV uploads
ALLOWED_EXTENSIONS = frozenset({
    ".pdf", ".doc", ".docx", ".odt", ".rtf", ".txt",
})

# Magic byte signatures for common document types
MAGIC_BYTES = {
    b"%PDF": "pdf",
    b"PK\x03\x04": "zip",                       # docx / odt containers
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1": "ole",  # legacy .doc
    b"{\\rtf": "rtf",
}


def max_file_size_bytes() -> int:
    return settings.MAX_CV_SIZE_MB * 1024 * 1024


class FileValidationResult:
    """Result of file validation checks."""

    def __init__(self):
        self.warnings: list[str] = []
        self.errors: list[str] = []

    @property
    def passed(self) -> bool:
        """True if no blocking errors (warnings are acceptable)."""
        return len(self.errors) == 0


def check_file_size(content_length: int, limit: Optional[int] = None) -> Optional[str]:
    """Check if file size is within allowed limits.

    Returns an error message if empty or oversized, None if OK.
    """
    limit = max_file_size_bytes() if limit is None else limit
    if content_length == 0:
        return "File is empty"
    if content_length > limit:
        return (
            f"File size ({content_length / 1024 / 1024:.1f} MB) exceeds "
            f"limit ({limit / 1024 / 1024:.0f} MB)"
        )
    return None


def check_file_extension(filename: Optional[str]) -> Optional[str]:
    """Check if file extension is in the allowlist.

    Returns an error message if not allowed, None if OK.
    """
    if not filename:
        return "No filename provided -- cannot check extension"
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        return f"File extension '{ext}' is not in the allowlist: {sorted(ALLOWED_EXTENSIONS)}"
    return None


def check_magic_bytes(content: bytes) -> Optional[str]:
    """Check file header (magic bytes) against known signatures.

    Returns warning message if unrecognized, None if OK.
    """
    if len(content) < 4:
        return "File is too small to check magic bytes"

    header = content[:16]
    for magic, file_type in MAGIC_BYTES.items():
        if header.startswith(magic):
            logger.debug(f"Magic bytes match: {file_type}")
            return None

    # Plain-text CVs have no signature
    try:
        header.decode("utf-8")
        return None
    except UnicodeDecodeError:
        return "File header does not match any known signature and is not valid UTF-8"


def validate_upload(
    filename: Optional[str],
    content: bytes,
) -> FileValidationResult:
    """Run all validation checks on an uploaded CV."""
    result = FileValidationResult()

    size_error = check_file_size(len(content))
    if size_error:
        result.errors.append(size_error)
        logger.warning(f"File validation: {size_error}")

    ext_error = check_file_extension(filename)
    if ext_error:
        result.errors.append(ext_error)
        logger.warning(f"File validation: {ext_error}")

    if content:
        magic_warning = check_magic_bytes(content)
        if magic_warning:
            result.warnings.append(magic_warning)
            logger.warning(f"File validation: {magic_warning}")

    if result.passed and not result.warnings:
        logger.debug(f"File validation passed: {filename}")

    return result
