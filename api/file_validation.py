"""Image upload validation.

Uploads are checked for content type, size and magic bytes before they
reach the extraction pipeline.
"""

import logging
import os
from typing import Final

from fastapi import UploadFile

from docverify.core.config import ALLOWED_IMAGE_CONTENT_TYPES, MAX_IMAGE_SIZE_MB
from docverify.core.exceptions import PayloadTooLargeError, ValidationError
from docverify.utils.file_detection import HEADER_SIZE, detect_image_type

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE_BYTES: Final = MAX_IMAGE_SIZE_MB * 1024 * 1024


def _get_file_size(file: UploadFile) -> int:
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def _validate_file_size(size: int) -> None:
    if size == 0:
        raise ValidationError(
            message="File is empty (0 bytes)",
            field="image",
            details={"file_size": 0},
        )

    if size > MAX_IMAGE_SIZE_BYTES:
        raise PayloadTooLargeError(
            max_size_mb=MAX_IMAGE_SIZE_MB,
            actual_size_mb=size / (1024 * 1024),
        )


async def read_validated_image(file: UploadFile) -> bytes:
    """Validate an uploaded image and return its bytes.

    Args:
        file: FastAPI UploadFile object

    Raises:
        ValidationError: Wrong content type, empty file or unknown magic bytes
        PayloadTooLargeError: File exceeds the size limit
    """
    if file.content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise ValidationError(
            message=f"Invalid content type: {file.content_type}",
            field="image",
            details={
                "detail": "image field is required (png/jpg/webp/gif)",
                "allowed_types": sorted(ALLOWED_IMAGE_CONTENT_TYPES),
            },
        )

    file_size = _get_file_size(file)
    _validate_file_size(file_size)

    header = file.file.read(HEADER_SIZE)
    file.file.seek(0)

    result = detect_image_type(header)
    if result is None:
        raise ValidationError(
            message="Unsupported file type (invalid magic bytes)",
            field="image",
            details={
                "magic_bytes": header.hex(),
                "expected_types": ["png", "jpeg", "webp", "gif"],
            },
        )

    detected_type, expected_content_type = result
    if file.content_type != expected_content_type:
        logger.warning(
            "Content-Type mismatch: header=%s detected=%s",
            file.content_type,
            expected_content_type,
        )

    logger.info(
        "Image validated: type=%s size=%d content_type=%s",
        detected_type,
        file_size,
        file.content_type,
    )
    return await file.read()
