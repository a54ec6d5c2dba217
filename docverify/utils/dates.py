"""
Date helpers for extracted identity fields.

Providers are asked for ISO dates but civil-registry scans often come back
in local notations, so a handful of common formats are accepted and
re-rendered as ``YYYY-MM-DD``.
"""

from datetime import date, datetime

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_document_date(value: str | None) -> date | None:
    """
    Parse a document date string using the accepted formats.

    Args:
      value: Raw date string.

    Returns:
      A ``date`` if any format matches, otherwise None.
    """
    if not isinstance(value, str):
        return None
    cleaned = " ".join(value.strip().split())
    if not cleaned:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def normalize_iso_date(value: str | None) -> str:
    """Return ``YYYY-MM-DD`` for a parseable date, else an empty string."""
    parsed = parse_document_date(value)
    return parsed.isoformat() if parsed else ""
