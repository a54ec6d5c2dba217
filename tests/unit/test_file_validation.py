"""Unit tests for image upload validation."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from api.file_validation import MAX_IMAGE_SIZE_BYTES, read_validated_image
from docverify.core.exceptions import PayloadTooLargeError, ValidationError
from docverify.utils.file_detection import detect_image_type, mime_type_for

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 16
WEBP = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 8


def upload(data: bytes, content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename="doc.png",
        headers=Headers({"content-type": content_type}),
    )


class TestDetectImageType:
    @pytest.mark.parametrize(
        "data, expected",
        [
            (PNG, ("png", "image/png")),
            (JPEG, ("jpeg", "image/jpeg")),
            (b"GIF89a" + b"\x00" * 6, ("gif", "image/gif")),
            (WEBP, ("webp", "image/webp")),
            (b"%PDF-1.7\n\x00\x00\x00\x00", None),
        ],
    )
    def test_signatures(self, data, expected):
        assert detect_image_type(data[:12]) == expected

    def test_mime_type_default(self):
        assert mime_type_for(b"unknown bytes") == "image/jpeg"
        assert mime_type_for(PNG) == "image/png"


class TestReadValidatedImage:
    async def test_valid_png(self):
        assert await read_validated_image(upload(PNG)) == PNG

    async def test_wrong_content_type(self):
        with pytest.raises(ValidationError):
            await read_validated_image(upload(PNG, "application/pdf"))

    async def test_empty_file(self):
        with pytest.raises(ValidationError) as exc_info:
            await read_validated_image(upload(b""))
        assert exc_info.value.details["file_size"] == 0

    async def test_too_large(self):
        data = PNG + b"\x00" * MAX_IMAGE_SIZE_BYTES
        with pytest.raises(PayloadTooLargeError):
            await read_validated_image(upload(data))

    async def test_magic_bytes_must_match_an_image(self):
        with pytest.raises(ValidationError):
            await read_validated_image(upload(b"not an image at all"))

    async def test_declared_type_mismatch_is_tolerated(self):
        assert await read_validated_image(upload(JPEG, "image/png")) == JPEG
