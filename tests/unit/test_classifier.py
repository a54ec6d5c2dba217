"""Unit tests for document classification and the reference cross-check."""

import pytest

from docverify.models.dto import ExtractionResult, VerificationStatus, VerificationType
from docverify.processors.classifier import (
    ClassifiedDocument,
    classify,
    classify_document_type,
    cross_check,
)


@pytest.mark.parametrize(
    "hint, expected",
    [
        ("Certificate of Live Birth", VerificationType.PSA),
        ("CERTIFICATE OF BIRTH", VerificationType.PSA),
        ("Voter's Certification", VerificationType.VOTERS),
        ("PhilSys National ID", VerificationType.UNKNOWN),
        ("Philippine Identification Card (National ID)", VerificationType.UNKNOWN),
        ("Driver's License", VerificationType.UNKNOWN),
        ("", VerificationType.UNKNOWN),
    ],
)
def test_classify_document_type(hint, expected):
    assert classify_document_type(hint) is expected


def test_voter_precinct_whitespace_removed():
    document = classify(
        ExtractionResult(document_type="Voter's Certification", precinct_number="00 12A")
    )
    assert document.result.precinct_number == "0012A"


class TestCrossCheck:
    async def test_birth_certificate_match(self, repository):
        document = classify(
            ExtractionResult(
                document_type="Certificate of Live Birth",
                first_name="Juan",
                last_name="Delacruz",
                sex="M",
                date_of_birth="1990-01-01",
            )
        )
        assert await cross_check(repository, document) is VerificationStatus.AUTHENTIC

    async def test_empty_fields_never_match(self, repository):
        document = classify(ExtractionResult(document_type="Certificate of Live Birth"))
        assert await cross_check(repository, document) is VerificationStatus.FAKE

    async def test_unknown_type_cannot_be_checked(self, repository):
        document = ClassifiedDocument(VerificationType.UNKNOWN, ExtractionResult())
        with pytest.raises(ValueError):
            await cross_check(repository, document)
