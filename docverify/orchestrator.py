from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from docverify.cache.inflight import InFlightDeduplicator
from docverify.cache.ttl_cache import TTLCache
from docverify.clients.gemini_client import ImagePart
from docverify.core.config import GEMINI_API_KEY_PROVIDER, OCR_CACHE_KEY_PREFIX
from docverify.models.dto import ExtractionResult
from docverify.processors.extractor import DocumentExtractor
from docverify.processors.sex_ensemble import ReferenceImage, SexDisambiguator
from docverify.processors.structured_code import StructuredCodeReader
from docverify.utils.file_detection import mime_type_for
from docverify.utils.image_crop import CropBox, crop_relative
from docverify.utils.timing import StageTimers

logger = logging.getLogger(__name__)


def image_cache_key(image_bytes: bytes) -> str:
    return OCR_CACHE_KEY_PREFIX + hashlib.sha256(image_bytes).hexdigest()


@dataclass
class ExtractionContext:
    cache_key: str
    image: ImagePart
    filename: str
    api_key: str = ""
    source: str = ""
    timers: StageTimers = field(default_factory=StageTimers)


class ExtractionPipeline:
    """
    Cached, deduplicated extraction of one document image.

    Stages per cache miss: QR short-circuit, full extraction, and the sex
    ensemble when extraction left ``sex`` empty. Identical image bytes
    submitted concurrently share one pipeline run; results are cached by
    content hash until the cache TTL expires.
    """

    def __init__(
        self,
        qr_reader: StructuredCodeReader,
        extractor: DocumentExtractor,
        disambiguator: Optional[SexDisambiguator],
        cache: TTLCache[ExtractionResult],
        inflight: InFlightDeduplicator[ExtractionResult],
        api_key_provider,
        reference_images: Sequence[ReferenceImage] = (),
        crop_box: Optional[CropBox] = None,
    ):
        self.qr_reader = qr_reader
        self.extractor = extractor
        self.disambiguator = disambiguator
        self.cache = cache
        self.inflight = inflight
        self.api_key_provider = api_key_provider
        self.reference_images = tuple(reference_images)
        self.crop_box = crop_box

    async def extract(self, image_bytes: bytes, filename: str = "upload.jpg") -> ExtractionResult:
        key = image_cache_key(image_bytes)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("OCR cache hit", extra={"cache_key": key, "cached": True})
            return cached

        ctx = ExtractionContext(
            cache_key=key,
            image=ImagePart(data=image_bytes, mime_type=mime_type_for(image_bytes)),
            filename=filename,
        )
        return await self.inflight.run(key, lambda: self._run(ctx))

    async def _run(self, ctx: ExtractionContext) -> ExtractionResult:
        api_key = await self.api_key_provider.get_api_key(GEMINI_API_KEY_PROVIDER)
        ctx.api_key = api_key.api_key

        with ctx.timers.timer("qr"):
            result = await self.qr_reader.short_circuit(ctx.image, ctx.api_key)

        if result is not None:
            ctx.source = "qr"
        else:
            ctx.source = "extraction"
            with ctx.timers.timer("extract"):
                result = await self.extractor.extract(ctx.image, ctx.api_key)
            if not result.sex and self.disambiguator is not None:
                with ctx.timers.timer("sex_ensemble"):
                    sex = await self._resolve_sex(ctx)
                if sex:
                    result = result.model_copy(update={"sex": sex})

        self.cache.set(ctx.cache_key, result)
        logger.info(
            "Extraction completed via %s",
            ctx.source,
            extra={"cache_key": ctx.cache_key, "timings": ctx.timers.as_millis()},
        )
        return result

    async def _resolve_sex(self, ctx: ExtractionContext) -> str:
        crop = None
        if self.crop_box is not None:
            cropped = await asyncio.to_thread(crop_relative, ctx.image.data, self.crop_box)
            if cropped is not None:
                crop = ImagePart(data=cropped, mime_type="image/png")
        return await self.disambiguator.resolve(
            ctx.image,
            ctx.api_key,
            auxiliary_crop=crop,
            reference_images=self.reference_images,
        )
