"""
Document classification and reference-record cross-check.

The free-text document type hint decides which reference store an
extraction is checked against:

- birth certificate -> PSA (name + sex + birth date against PSA records)
- voter certification -> VOTERS (precinct + name against voter records)
- anything else -> UNKNOWN, which the caller treats as a hard failure
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docverify.database.ports import Repository
from docverify.models.dto import ExtractionResult, VerificationStatus, VerificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifiedDocument:
    type: VerificationType
    result: ExtractionResult


def classify_document_type(document_type: str) -> VerificationType:
    hint = (document_type or "").lower()
    if "certificate" in hint and "birth" in hint:
        return VerificationType.PSA
    if "certification" in hint and "vote" in hint:
        return VerificationType.VOTERS
    return VerificationType.UNKNOWN


def normalize_precinct(value: str) -> str:
    return "".join((value or "").split())


def classify(result: ExtractionResult) -> ClassifiedDocument:
    """Classify ``result`` and apply the per-type field normalization."""
    verification_type = classify_document_type(result.document_type)
    if verification_type is VerificationType.VOTERS:
        result = result.model_copy(
            update={"precinct_number": normalize_precinct(result.precinct_number)}
        )
    return ClassifiedDocument(type=verification_type, result=result)


async def cross_check(
    repository: Repository, document: ClassifiedDocument
) -> VerificationStatus:
    """AUTHENTIC when a reference record matches, FAKE otherwise."""
    result = document.result
    if document.type is VerificationType.PSA:
        record = await repository.find_psa_record(
            result.first_name, result.last_name, result.sex, result.date_of_birth
        )
    elif document.type is VerificationType.VOTERS:
        record = await repository.find_voter_record(
            result.precinct_number, result.first_name, result.last_name
        )
    else:
        raise ValueError(f"cannot cross-check document type {document.type.value}")

    return VerificationStatus.AUTHENTIC if record else VerificationStatus.FAKE
