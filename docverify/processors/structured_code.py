"""
QR short-circuit pass.

A cheap first call asks the model only for the decoded QR content. A PSA
national ID QR carries trusted structured data, which is mapped straight to
an ExtractionResult so the expensive full extraction is skipped. Anything
else (no code, a non-PSA payload, any error) falls through silently.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Sequence

from docverify.clients.gemini_client import (
    ExtractionProvider,
    GenerationRequest,
    ImagePart,
)
from docverify.core.config import PSA_ISSUER, QR_MAX_OUTPUT_TOKENS
from docverify.core.exceptions import ModelUnavailable
from docverify.models.dto import ExtractionResult, StructuredCodePayload
from docverify.resilience import (
    Classification,
    FallbackRunner,
    StrategiesExhausted,
    Strategy,
)

logger = logging.getLogger(__name__)

PHILSYS_DOCUMENT_TYPE = "PhilSys National ID"

REQUIRED_SUBJECT_FIELDS = ("DOB", "PCN", "POB", "fn", "ln", "mn", "s")

# Gemini rejects OBJECT schemas without declared properties, so the trusted
# PSA shape is spelled out for the nested "qr" object.
QR_DETECT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "found": {"type": "BOOLEAN"},
        "raw": {"type": "STRING"},
        "qr": {
            "type": "OBJECT",
            "properties": {
                "d": {"type": "STRING"},
                "i": {"type": "STRING"},
                "sb": {
                    "type": "OBJECT",
                    "properties": {
                        name: {"type": "STRING"}
                        for name in ("BF", *REQUIRED_SUBJECT_FIELDS, "sf")
                    },
                },
            },
        },
    },
    "required": ["found", "qr", "raw"],
}

QR_DETECT_PROMPT = " ".join(
    [
        "You are a QR code detector and reader.",
        "Inspect the provided image and do the following:",
        "1) If a QR code is visible and decodable, decode its content.",
        "2) If the decoded QR content looks like JSON (starts with '{' and ends with '}'), parse it and place it in the 'qr' field, and set 'raw' to the original text.",
        "3) If the decoded QR content is not JSON, set 'qr' to an empty object {} and set 'raw' to the decoded string.",
        "4) If there is no visible or readable QR, set 'found' to false and return qr: {} and raw: \"\".",
        "Return strictly valid JSON only.",
    ]
)


def is_trusted_psa_payload(obj: Any) -> bool:
    """True when ``obj`` has ``d``, ``i == PSA`` and a complete ``sb`` subject."""
    if not isinstance(obj, dict):
        return False
    if not obj.get("d") or not obj.get("i") or not isinstance(obj.get("sb"), dict):
        return False
    if str(obj["i"]).upper() != PSA_ISSUER:
        return False
    subject = obj["sb"]
    return all(name in subject and subject[name] is not None for name in REQUIRED_SUBJECT_FIELDS)


def normalize_place(value: str) -> str:
    if not value:
        return ""
    value = re.sub(r",\s*", ", ", value)
    return re.sub(r"\s{2,}", " ", value).strip()


def map_psa_payload(obj: dict[str, Any]) -> ExtractionResult:
    subject = obj.get("sb") or {}
    first_name = str(subject.get("fn") or "").strip().upper()
    middle_name = str(subject.get("mn") or "").strip().upper()
    last_name = str(subject.get("ln") or "").strip().upper()
    place_of_birth = normalize_place(str(subject.get("POB") or ""))

    return ExtractionResult(
        document_type=PHILSYS_DOCUMENT_TYPE,
        external_id=re.sub(r"[^0-9]", "", str(subject.get("PCN") or "")),
        full_name=" ".join(p for p in (first_name, middle_name, last_name) if p),
        first_name=first_name,
        middle_name=middle_name,
        last_name=last_name,
        sex=str(subject.get("s") or "").strip(),
        date_of_birth=str(subject.get("DOB") or "").strip(),
        place_of_birth=place_of_birth,
        # PSA QR carries no separate address
        address=place_of_birth,
    )


def to_structured_payload(response: dict[str, Any]) -> StructuredCodePayload:
    """Normalize a detector response so that found=False implies empty fields."""
    if not response.get("found"):
        return StructuredCodePayload.not_found()

    raw = response.get("raw")
    raw = raw if isinstance(raw, str) else ""
    candidate = response.get("qr")
    if not (isinstance(candidate, dict) and candidate) and raw.strip().startswith("{"):
        try:
            candidate = json.loads(raw)
        except ValueError:
            candidate = None

    structured = candidate if is_trusted_psa_payload(candidate) else None
    return StructuredCodePayload(found=True, structured=structured, raw=raw)


def _classify(error: BaseException) -> Classification:
    if isinstance(error, ModelUnavailable):
        return Classification.RETRY_NEXT_SCOPE
    return Classification.FATAL


class StructuredCodeReader:
    def __init__(self, provider: ExtractionProvider, models: Sequence[str]):
        self.provider = provider
        self.models = tuple(models)

    async def detect(self, image: ImagePart, api_key: str) -> StructuredCodePayload:
        """Ask for the QR content; provider errors propagate to the caller."""

        async def detect_once(model: str) -> dict:
            return await self.provider.generate_json(
                GenerationRequest(
                    model=model,
                    prompt=QR_DETECT_PROMPT,
                    images=(image,),
                    response_schema=QR_DETECT_SCHEMA,
                    max_output_tokens=QR_MAX_OUTPUT_TOKENS,
                ),
                api_key,
            )

        runner = FallbackRunner(
            scopes=self.models,
            strategies=[Strategy("qr", detect_once)],
            classify=_classify,
            name="qr",
        )
        return to_structured_payload(await runner.run())

    async def short_circuit(
        self, image: ImagePart, api_key: str
    ) -> Optional[ExtractionResult]:
        """Mapped result for a trusted PSA QR, else None. Never raises provider errors."""
        try:
            payload = await self.detect(image, api_key)
        except StrategiesExhausted:
            logger.info("QR pass skipped: no model available")
            return None
        except Exception as e:
            logger.info("QR pass failed, falling through to extraction: %s", e)
            return None

        if payload.structured is None:
            logger.debug("No trusted QR payload (found=%s)", payload.found)
            return None
        return map_psa_payload(payload.structured)
