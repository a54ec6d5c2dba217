"""
PII-safe logging utilities.

Names and PhilSys card numbers are masked before they reach the logs while
keeping enough of them to correlate requests.
"""


def sanitize_name(name: str | None) -> str:
    """
    Sanitize a personal name for logs.

    Rules:
    - None / empty / <4 chars → fully masked
    - Otherwise → first 2 + last 2 chars, middle masked
    """
    if not name:
        return "***"

    name = name.strip()
    if len(name) < 4:
        return "***"

    return f"{name[:2]}***{name[-2:]}"


def sanitize_pcn(pcn: str | None) -> str:
    """
    Sanitize a PhilSys card number for logs.

    Only the last 4 digits survive; short values are fully masked.
    """
    digits = "".join(ch for ch in (pcn or "") if ch.isdigit())
    if len(digits) < 8:
        return "***"

    return f"***{digits[-4:]}"
