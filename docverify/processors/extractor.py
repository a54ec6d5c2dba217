"""
Full-document field extraction.

For each model in priority order: a strict schema-enforced call first, then
on a parse/format failure a relaxed call on the same model (inline JSON
template, no schema, larger output cap). A model that is unavailable is
skipped without trying the relaxed prompt; any other error propagates.
"""

from __future__ import annotations

import logging
from typing import Sequence

from docverify.clients.gemini_client import (
    ExtractionProvider,
    GenerationRequest,
    ImagePart,
)
from docverify.core.config import (
    EXTRACTION_MAX_OUTPUT_TOKENS,
    EXTRACTION_RELAXED_MAX_OUTPUT_TOKENS,
)
from docverify.core.exceptions import (
    ExtractionFailed,
    ModelUnavailable,
    NoModelAvailable,
    ProviderMalformedOutput,
    ProviderTruncated,
)
from docverify.models.dto import ExtractionResult
from docverify.resilience import (
    Classification,
    FallbackRunner,
    StrategiesExhausted,
    Strategy,
)

logger = logging.getLogger(__name__)

EXTRACTION_FIELDS = (
    "documentType",
    "externalId",
    "fullName",
    "firstName",
    "middleName",
    "lastName",
    "sex",
    "dateOfBirth",
    "placeOfBirth",
    "address",
    "precinctNumber",
    "voterIdNumber",
    "otherNotes",
)

EXTRACTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {name: {"type": "STRING"} for name in EXTRACTION_FIELDS},
    "required": list(EXTRACTION_FIELDS),
}

EXTRACTION_PROMPT = " ".join(
    [
        "You are a precise information extractor for Philippine identification and civil registry documents.",
        "If a QR code is visible, read it FIRST and use its structured content as the source of truth.",
        "If the QR is PSA-style (with keys d, i='PSA', sb{DOB, PCN, POB, fn, ln, mn, s,...}), map it to the requested output fields.",
        "If no usable QR is visible, use OCR on the image.",
        "",
        "Populate the following JSON keys exactly:",
        ", ".join(EXTRACTION_FIELDS) + ".",
        "Rules:",
        "1. documentType is the printed title of the document (e.g. 'Certificate of Live Birth', 'Voter's Certification').",
        "2. For dateOfBirth, always format the value as YYYY-MM-DD (ISO).",
        "3. For placeOfBirth, match and normalize locations within the Philippines (cities, municipalities, or provinces).",
        "   Use knowledge of Philippine geography to correct spacing and commas.",
        "4. sex must be exactly 'Male', 'Female' or an empty string.",
        "5. If a field is not visible or uncertain, return an empty string for that field.",
        "6. Do not include commentary or extra keys; return strictly valid JSON.",
        "7. voterIdNumber can also be externalId when the uploaded image is a voter's certification.",
    ]
)

RELAXED_TEMPLATE = """
Return only this JSON:
{"documentType":"","externalId":"","fullName":"","firstName":"","middleName":"","lastName":"","sex":"","dateOfBirth":"","placeOfBirth":"","address":"","precinctNumber":"","voterIdNumber":"","otherNotes":""}
Keep all values short and on one line.
Format dateOfBirth strictly as YYYY-MM-DD.
For placeOfBirth, ensure it's a valid location in the Philippines (city, municipality, or province), with proper comma spacing.
"""


def classify_extraction_error(error: BaseException) -> Classification:
    if isinstance(error, (ProviderMalformedOutput, ProviderTruncated)):
        return Classification.RETRY_SAME_SCOPE
    if isinstance(error, ModelUnavailable):
        return Classification.RETRY_NEXT_SCOPE
    return Classification.FATAL


class DocumentExtractor:
    """Extract canonical identity fields from a document image."""

    def __init__(self, provider: ExtractionProvider, models: Sequence[str]):
        self.provider = provider
        self.models = tuple(models)

    async def extract(
        self, image: ImagePart, api_key: str
    ) -> ExtractionResult:
        """
        Run the strict/relaxed extraction chain over every model.

        Raises:
            ExtractionFailed: The relaxed prompt also produced no usable JSON
            NoModelAvailable: Every model was unavailable
            ProviderBlocked / ExternalServiceError: Propagated unchanged
        """

        async def strict(model: str) -> dict:
            return await self.provider.generate_json(
                GenerationRequest(
                    model=model,
                    prompt=EXTRACTION_PROMPT,
                    images=(image,),
                    response_schema=EXTRACTION_SCHEMA,
                    max_output_tokens=EXTRACTION_MAX_OUTPUT_TOKENS,
                ),
                api_key,
            )

        async def relaxed(model: str) -> dict:
            return await self.provider.generate_json(
                GenerationRequest(
                    model=model,
                    prompt=EXTRACTION_PROMPT + RELAXED_TEMPLATE,
                    images=(image,),
                    response_schema=None,
                    max_output_tokens=EXTRACTION_RELAXED_MAX_OUTPUT_TOKENS,
                ),
                api_key,
            )

        runner = FallbackRunner(
            scopes=self.models,
            strategies=[Strategy("strict", strict), Strategy("relaxed", relaxed)],
            classify=classify_extraction_error,
            name="extraction",
        )
        try:
            payload = await runner.run()
        except (ProviderMalformedOutput, ProviderTruncated) as e:
            raise ExtractionFailed(e.reason, details={"model": e.model}) from e
        except StrategiesExhausted as e:
            raise NoModelAvailable(list(self.models)) from e.last_error

        return ExtractionResult.from_provider(payload)
