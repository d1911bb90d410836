"""Content fingerprints for picture deduplication."""

import hashlib
import mimetypes
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .domain import Picture

DEFAULT_MIME_TYPE = "image/jpeg"


def compute_sha256_from_bytes(data: bytes) -> str:
    """SHA256 hex digest of picture content."""
    return hashlib.sha256(data).hexdigest()


def find_equal_picture(candidate: bytes, pictures: Iterable[Picture]) -> Tuple[Optional[bytes], int]:
    """
    Compare ``candidate`` against already stored pictures.

    Returns:
        ``(None, picture_id)`` if an identical picture exists,
        ``(candidate, 0)`` otherwise
    """
    fingerprint = compute_sha256_from_bytes(candidate)
    for picture in pictures:
        binary = picture.picture_binary or b""
        if len(binary) == len(candidate) and compute_sha256_from_bytes(binary) == fingerprint:
            return None, picture.id or 0
    return candidate, 0


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    return DEFAULT_MIME_TYPE


def read_picture(path: str) -> bytes:
    return Path(path).read_bytes()
