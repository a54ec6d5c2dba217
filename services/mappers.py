"""Response mapping utilities for API endpoints."""

from typing import Optional, Sequence

from api.schemas import Envelope
from docverify.core.config import DEFAULT_VERIFICATION_TYPES
from docverify.models.dto import VerificationRecord
from services.verification_service import VerificationOutcome


def parse_type_filter(values: Optional[Sequence[str]]) -> list[str]:
    """Flatten repeated and comma-separated ``type`` query values."""
    types = [
        part.strip().upper()
        for value in values or []
        for part in value.split(",")
        if part.strip()
    ]
    return types or list(DEFAULT_VERIFICATION_TYPES)


def build_outcome_envelope(outcome: VerificationOutcome) -> Envelope[VerificationRecord]:
    """Map a verification outcome to the response envelope.

    FAKE verdicts are a successful request with ``success=false``.
    """
    return Envelope(
        success=outcome.success,
        data=outcome.record,
        message=outcome.message,
        cached=outcome.cached,
    )
