"""Upload helpers for profile pictures.

Enforces size limits while reading the upload and turns client-supplied
filenames into safe object key components.
"""

import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from fastapi import UploadFile

from webapp.core.errors import ValidationError

logger = structlog.get_logger()

# Chunk size for reading uploads (64 KB)
CHUNK_SIZE_BYTES = 64 * 1024

# Content types accepted for profile pictures
ALLOWED_IMAGE_TYPES: frozenset[str] = frozenset(
    {"image/png", "image/jpg", "image/jpeg"}
)

_MAX_FILENAME_LENGTH = 100


def normalize_image_type(content_type: str | None) -> str | None:
    """Return the bare, lowercased MIME type if it is an accepted image type.

    Parameters such as "; charset=..." are ignored. Returns None for
    anything not in ALLOWED_IMAGE_TYPES.
    """
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime if mime in ALLOWED_IMAGE_TYPES else None


async def read_file_with_size_limit(file: "UploadFile", max_size: int) -> bytes:
    """Read an upload in chunks, rejecting it once it exceeds max_size.

    Args:
        file: UploadFile from FastAPI.
        max_size: Maximum allowed file size in bytes.

    Returns:
        File content as bytes.

    Raises:
        ValidationError: If the file exceeds the size limit.
    """
    chunks: list[bytes] = []
    total_size = 0

    while True:
        chunk = await file.read(CHUNK_SIZE_BYTES)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_size:
            logger.warning(
                "Upload rejected for size", filename=file.filename, max_size=max_size
            )
            raise ValidationError(
                message=f"File too large. Maximum size: {max_size // (1024 * 1024)}MB",
                details=[{"field": "profilePic", "error": "FILE_TOO_LARGE"}],
            )
        chunks.append(chunk)

    return b"".join(chunks)


def sanitize_filename(filename: str | None, max_length: int = _MAX_FILENAME_LENGTH) -> str:
    """Reduce a client filename to characters safe inside an object key.

    Path components are dropped, anything outside ``[A-Za-z0-9._-]`` becomes
    ``_``, and the result is truncated while keeping the extension.

    Args:
        filename: Original filename (may be None).
        max_length: Maximum length of the result.

    Returns:
        Sanitized filename, or "upload" if nothing usable remains.
    """
    if not filename:
        return "upload"

    # Drop any directory part (both separators)
    base = re.split(r"[\\/]", filename)[-1]
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", base).strip("._")

    if len(safe) > max_length:
        if "." in safe:
            name, ext = safe.rsplit(".", 1)
            ext = f".{ext[:10]}"
            safe = name[: max_length - len(ext)] + ext
        else:
            safe = safe[:max_length]

    return safe or "upload"
