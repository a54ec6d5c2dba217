"""Cropping of the sex checkbox region before the disambiguation ensemble."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

CropBox = tuple[float, float, float, float]


def parse_crop_box(value: str | None) -> CropBox | None:
    """
    Parse a relative crop box ``"x0,y0,x1,y1"`` with coordinates in [0, 1].

    Returns None for an empty value. Raises ValueError for a malformed box.
    """
    if not value or not value.strip():
        return None
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 4:
        raise ValueError("crop box must have four comma-separated values")
    x0, y0, x1, y1 = (float(p) for p in parts)
    if not (0.0 <= x0 < x1 <= 1.0 and 0.0 <= y0 < y1 <= 1.0):
        raise ValueError("crop box must satisfy 0 <= x0 < x1 <= 1 and 0 <= y0 < y1 <= 1")
    return (x0, y0, x1, y1)


def crop_relative(image_bytes: bytes, box: CropBox) -> bytes | None:
    """
    Crop ``image_bytes`` to a relative box and return PNG bytes.

    Returns None when the image cannot be decoded or exceeds the Pillow
    pixel limit; the caller then falls back to the full image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            width, height = image.size
            x0, y0, x1, y1 = box
            region = image.crop(
                (int(x0 * width), int(y0 * height), int(x1 * width), int(y1 * height))
            )
            if region.mode not in ("RGB", "L"):
                region = region.convert("RGB")
            buffer = io.BytesIO()
            region.save(buffer, format="PNG")
            return buffer.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Could not crop image for sex ensemble: %s", e)
        return None
