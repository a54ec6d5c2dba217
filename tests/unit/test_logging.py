"""Unit tests for structured logging and PII masking."""

import json
import logging

from core.logging_utils import sanitize_name, sanitize_pcn
from docverify.core.logging_config import StructuredFormatter


def test_structured_formatter_includes_context_fields():
    record = logging.LogRecord("docverify", logging.INFO, __file__, 10, "cache hit", None, None)
    record.cache_key = "ocr:gemini:ab"
    record.trace_id = "t-1"
    record.unrelated = "dropped"

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "cache hit"
    assert data["cache_key"] == "ocr:gemini:ab"
    assert data["trace_id"] == "t-1"
    assert "unrelated" not in data
    assert data["timestamp"].endswith("Z")


def test_sanitize_name():
    assert sanitize_name("JUAN DELACRUZ") == "JU***UZ"
    assert sanitize_name("Ana") == "***"
    assert sanitize_name(None) == "***"


def test_sanitize_pcn():
    assert sanitize_pcn("1234-5678-9012-3456") == "***3456"
    assert sanitize_pcn("1234") == "***"
