"""
Image type detection using magic bytes.

Uploads are trusted only after their header matches one of the accepted
image signatures; the declared content type alone is not enough.

Magic bytes reference:
- PNG:  0x89504E47 (89 P N G)
- JPEG: 0xFFD8FF
- GIF:  GIF87a / GIF89a
- WEBP: RIFF????WEBP (12 bytes)
"""

from typing import Final, Literal

ImageType = Literal["png", "jpeg", "gif", "webp"]
MimeType = Literal["image/png", "image/jpeg", "image/gif", "image/webp"]

MAGIC_BYTES_MAP: Final[dict[bytes, tuple[ImageType, MimeType]]] = {
    b"\x89PNG": ("png", "image/png"),
    b"\xff\xd8\xff": ("jpeg", "image/jpeg"),
    b"GIF87a": ("gif", "image/gif"),
    b"GIF89a": ("gif", "image/gif"),
}

HEADER_SIZE: Final[int] = 12


def detect_image_type(header: bytes) -> tuple[ImageType, MimeType] | None:
    """
    Detect image type from a magic bytes header.

    Args:
        header: First 12+ bytes of the file

    Returns:
        Tuple of (image_type, mime_type) or None if unrecognized

    Example:
        >>> detect_image_type(b"\\x89PNG\\r\\n\\x1a\\n\\x00\\x00\\x00\\r")
        ('png', 'image/png')
    """
    if len(header) >= HEADER_SIZE and header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return ("webp", "image/webp")
    for signature, result in MAGIC_BYTES_MAP.items():
        if header.startswith(signature):
            return result
    return None


def mime_type_for(data: bytes, default: str = "image/jpeg") -> str:
    """Mime type for image bytes, falling back to ``default`` when unknown."""
    detected = detect_image_type(data[:HEADER_SIZE])
    return detected[1] if detected else default
