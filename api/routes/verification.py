"""Verification endpoints: listing, lookup, soft delete, PhilSys and OCR verification."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from api.file_validation import read_validated_image
from api.schemas import Envelope, ProblemDetail, PsaVerifyBody
from core.dependencies import get_verification_service
from docverify.core.config import PAGE_SIZE_DEFAULT, PAGE_SIZE_MAX
from docverify.models.dto import VerificationPage, VerificationRecord
from services.mappers import build_outcome_envelope, parse_type_filter
from services.verification_service import VerificationService

router = APIRouter(prefix="/api/verification", tags=["verification"])
logger = logging.getLogger(__name__)

DELETED_MESSAGE = "Verification deleted successfully!"

_ERROR_RESPONSES = {
    404: {"model": ProblemDetail},
    422: {"model": ProblemDetail},
    500: {"model": ProblemDetail},
    502: {"model": ProblemDetail},
    503: {"model": ProblemDetail},
    504: {"model": ProblemDetail},
}


@router.get(
    "/list/{user_id}",
    response_model=Envelope[VerificationPage],
    responses={404: {"model": ProblemDetail}},
)
async def list_verifications(
    user_id: str,
    q: str = Query("", description="Case-insensitive filter text"),
    type: Optional[list[str]] = Query(
        None, description="Types, repeated or comma-separated (default PSA,PHILSYS,VOTERS)"
    ),
    page_size: int = Query(PAGE_SIZE_DEFAULT, alias="pageSize", ge=1, le=PAGE_SIZE_MAX),
    page_index: int = Query(0, alias="pageIndex", ge=0),
    service: VerificationService = Depends(get_verification_service),
):
    page = await service.list_verifications(
        user_id,
        filter_text=q,
        types=parse_type_filter(type),
        page_size=page_size,
        page_index=page_index,
    )
    return Envelope(data=page)


@router.get(
    "/{verification_id}",
    response_model=Envelope[VerificationRecord],
    responses={404: {"model": ProblemDetail}},
)
async def get_verification(
    verification_id: str,
    service: VerificationService = Depends(get_verification_service),
):
    return Envelope(data=await service.get_verification(verification_id))


@router.delete(
    "/{verification_id}",
    response_model=Envelope[VerificationRecord],
    responses={404: {"model": ProblemDetail}},
)
async def delete_verification(
    verification_id: str,
    service: VerificationService = Depends(get_verification_service),
):
    record = await service.delete_verification(verification_id)
    return Envelope(data=record, message=DELETED_MESSAGE)


@router.post(
    "/verify/psa",
    response_model=Envelope[VerificationRecord],
    responses=_ERROR_RESPONSES,
)
async def verify_psa(
    request: Request,
    body: PsaVerifyBody,
    service: VerificationService = Depends(get_verification_service),
):
    trace_id = getattr(request.state, "trace_id", None)
    logger.info("[NEW REQUEST] PhilSys verification", extra={"trace_id": trace_id, "user_id": body.user_id})

    outcome = await service.verify_psa(body.user_id, body.verification_fields())

    logger.info(
        "[RESPONSE] status=%s cached=%s",
        outcome.record.status.value,
        outcome.cached,
        extra={"trace_id": trace_id, "verification_id": outcome.record.id},
    )
    return build_outcome_envelope(outcome)


@router.post(
    "/verify/ocr",
    response_model=Envelope[VerificationRecord],
    responses={413: {"model": ProblemDetail}, **_ERROR_RESPONSES},
)
async def verify_ocr(
    request: Request,
    image: UploadFile = File(..., description="PNG, JPEG, WEBP or GIF image (max 10 MB)"),
    user_id: str = Form(..., alias="userId", min_length=1),
    service: VerificationService = Depends(get_verification_service),
):
    trace_id = getattr(request.state, "trace_id", None)
    logger.info(
        "[NEW REQUEST] OCR verification file=%s",
        image.filename,
        extra={"trace_id": trace_id, "user_id": user_id},
    )

    image_bytes = await read_validated_image(image)
    outcome = await service.verify_ocr(user_id, image_bytes, image.filename or "upload.jpg")

    logger.info(
        "[RESPONSE] type=%s status=%s",
        outcome.record.type.value,
        outcome.record.status.value,
        extra={"trace_id": trace_id, "verification_id": outcome.record.id},
    )
    return build_outcome_envelope(outcome)
