"""Verification record lifecycle.

Every verification attempt for an existing user produces exactly one
persisted record:

- AUTHENTIC / FAKE when the flow completes
- ERROR with an empty payload when anything inside the attempt raises

Errors are re-raised after the ERROR record is written; client errors keep
their type, anything unexpected is wrapped in VerificationFailed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from core.logging_utils import sanitize_name, sanitize_pcn
from docverify.clients.verifier_client import RemoteVerifier
from docverify.core.config import DEFAULT_VERIFICATION_TYPES
from docverify.core.exceptions import (
    BaseError,
    ResourceNotFoundError,
    UnrecognizedDocumentType,
    ValidationError,
    VerificationFailed,
)
from docverify.database.ports import Repository
from docverify.models.dto import (
    ExtractionResult,
    PsaVerifyRequest,
    VerificationPage,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)
from docverify.orchestrator import ExtractionPipeline
from docverify.processors.classifier import classify, cross_check

logger = logging.getLogger(__name__)

PSA_REQUIRED_FIELDS = ("d", "dob", "pcn", "pob", "fn", "ln", "mn", "s")

NOT_AUTHENTIC_MESSAGE = "This is not authentic"


@dataclass
class VerificationOutcome:
    record: VerificationRecord
    message: Optional[str] = None
    cached: Optional[bool] = None

    @property
    def success(self) -> bool:
        return self.record.status is VerificationStatus.AUTHENTIC


def build_psa_request(fields: dict[str, Any]) -> PsaVerifyRequest:
    """Validate the PSA form fields; missing ones raise ValidationError."""
    missing = [name for name in PSA_REQUIRED_FIELDS if not str(fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            field=missing[0],
            details={"missing": missing},
        )
    values = {name: str(fields.get(name) or "").strip() for name in (*PSA_REQUIRED_FIELDS, "sf")}
    return PsaVerifyRequest(**values)


def psa_request_payload(request: PsaVerifyRequest, external_id: str) -> dict[str, str]:
    """Stored payload for a PhilSys form verification (ExtractionResult shape)."""
    result = ExtractionResult(
        external_id=external_id,
        full_name=" ".join(p for p in (request.fn, request.mn, request.ln) if p),
        first_name=request.fn,
        middle_name=request.mn,
        last_name=request.ln,
        sex=request.s,
        date_of_birth=request.dob,
        place_of_birth=request.pob,
        address=request.pob,
    )
    return result.to_payload(include_document_type=False)


class VerificationService:
    def __init__(
        self,
        repository: Repository,
        pipeline: ExtractionPipeline,
        verifier: RemoteVerifier,
    ):
        self.repository = repository
        self.pipeline = pipeline
        self.verifier = verifier

    async def _require_user(self, user_id: str) -> None:
        if not user_id or await self.repository.get_user_by_id(user_id) is None:
            raise ResourceNotFoundError("User", user_id or "")

    async def _record(
        self,
        verification_type: VerificationType,
        user_id: str,
        data: dict[str, Any],
        status: VerificationStatus,
    ) -> VerificationRecord:
        record = await self.repository.create_verification(
            verification_type, user_id, data, status
        )
        logger.info(
            "Verification recorded",
            extra={
                "user_id": user_id,
                "verification_id": record.id,
                "verification_type": verification_type.value,
                "status": status.value,
            },
        )
        return record

    async def _record_failure(
        self,
        error: Exception,
        verification_type: VerificationType,
        user_id: str,
    ) -> BaseError:
        """Record the ERROR attempt and return the exception to raise."""
        record = await self._record(verification_type, user_id, {}, VerificationStatus.ERROR)
        if isinstance(error, BaseError):
            logger.warning(
                "Verification attempt failed: %s",
                error.message,
                extra={"user_id": user_id, "verification_id": record.id, "error_code": error.error_code},
            )
            error.details.setdefault("verification_id", record.id)
            return error
        logger.error(
            "Unexpected verification failure",
            exc_info=error,
            extra={"user_id": user_id, "verification_id": record.id},
        )
        return VerificationFailed(str(error) or type(error).__name__, verification_id=record.id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_verification(self, verification_id: str) -> VerificationRecord:
        record = await self.repository.get_verification_by_id(verification_id)
        if record is None:
            raise ResourceNotFoundError("Verification", verification_id)
        return record

    async def list_verifications(
        self,
        user_id: str,
        filter_text: str = "",
        types: Optional[Sequence[str]] = None,
        page_size: int = 10,
        page_index: int = 0,
    ) -> VerificationPage:
        await self._require_user(user_id)
        return await self.repository.list_verifications_by_user(
            filter_text or "",
            list(types) if types else list(DEFAULT_VERIFICATION_TYPES),
            user_id,
            page_size,
            page_index,
        )

    async def delete_verification(self, verification_id: str) -> VerificationRecord:
        record = await self.get_verification(verification_id)
        await self.repository.delete_verification(verification_id)
        logger.info("Verification soft-deleted", extra={"verification_id": verification_id})
        return record

    # ------------------------------------------------------------------
    # Verification flows
    # ------------------------------------------------------------------

    async def verify_psa(self, user_id: str, fields: dict[str, Any]) -> VerificationOutcome:
        """Verify PhilSys form fields against the remote verifier."""
        await self._require_user(user_id)
        verification_type = VerificationType.PHILSYS

        try:
            request = build_psa_request(fields)
            logger.info(
                "PhilSys verification requested for %s (PCN %s)",
                sanitize_name(request.fn),
                sanitize_pcn(request.pcn),
                extra={"user_id": user_id},
            )
            verdict = await self.verifier.verify(request)
            record = await self._record(
                verification_type,
                user_id,
                psa_request_payload(request, external_id=request.pcn),
                verdict.status,
            )
        except Exception as e:
            failure = await self._record_failure(e, verification_type, user_id)
            if failure is e:
                raise
            raise failure from e

        return VerificationOutcome(record=record, message=verdict.message, cached=verdict.cached)

    async def verify_ocr(
        self, user_id: str, image_bytes: bytes, filename: str = "upload.jpg"
    ) -> VerificationOutcome:
        """Extract fields from an uploaded image, classify and cross-check them."""
        await self._require_user(user_id)
        verification_type = VerificationType.UNKNOWN

        try:
            result = await self.pipeline.extract(image_bytes, filename)
            document = classify(result)
            verification_type = document.type
            if verification_type is VerificationType.UNKNOWN:
                raise UnrecognizedDocumentType(result.document_type)

            status = await cross_check(self.repository, document)
            record = await self._record(
                verification_type,
                user_id,
                document.result.to_payload(include_document_type=False),
                status,
            )
        except Exception as e:
            failure = await self._record_failure(e, verification_type, user_id)
            if failure is e:
                raise
            raise failure from e

        message = None if status is VerificationStatus.AUTHENTIC else NOT_AUTHENTIC_MESSAGE
        return VerificationOutcome(record=record, message=message)
