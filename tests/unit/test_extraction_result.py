"""Unit tests for the canonical extraction result and date helpers."""

import pytest
from pydantic import ValidationError

from docverify.models.dto import ExtractionResult, normalize_sex
from docverify.utils.dates import normalize_iso_date


@pytest.mark.parametrize(
    "raw, expected",
    [("M", "Male"), ("female", "Female"), ("Lalaki", "Male"), ("babae.", "Female"), ("X", ""), (None, "")],
)
def test_normalize_sex(raw, expected):
    assert normalize_sex(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1990-01-01", "1990-01-01"),
        ("January 1, 1990", "1990-01-01"),
        ("01/31/1990", "1990-01-31"),
        ("31.01.1990", "1990-01-31"),
        ("sometime in 1990", ""),
    ],
)
def test_normalize_iso_date(raw, expected):
    assert normalize_iso_date(raw) == expected


class TestExtractionResult:
    def test_every_field_defaults_to_empty_string(self):
        payload = ExtractionResult().to_payload()
        assert len(payload) == 13
        assert set(payload.values()) == {""}

    def test_values_are_coerced_to_stripped_strings(self):
        result = ExtractionResult.from_provider(
            {"firstName": "  JUAN ", "externalId": 12345, "address": None, "unknownKey": "x"}
        )
        assert result.first_name == "JUAN"
        assert result.external_id == "12345"
        assert result.address == ""

    def test_canonical_key_wins_over_legacy(self):
        result = ExtractionResult.from_provider({"fullName": "JUAN DELACRUZ", "name": "other"})
        assert result.full_name == "JUAN DELACRUZ"

    def test_payload_without_document_type(self):
        payload = ExtractionResult(document_type="X", first_name="A").to_payload(
            include_document_type=False
        )
        assert "documentType" not in payload
        assert payload["firstName"] == "A"

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ExtractionResult().first_name = "B"
