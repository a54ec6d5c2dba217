"""
Recovery of JSON objects from free-text model output.

The outcome is a tagged result: ``Parsed`` carries the decoded object,
``Unparseable`` carries the reason. Callers branch on the type instead of
catching exceptions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Parsed:
    value: dict[str, Any]


@dataclass(frozen=True)
class Unparseable:
    reason: str


ParseOutcome = Union[Parsed, Unparseable]


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def parse_json_object(raw: str | None) -> ParseOutcome:
    """
    Recover a JSON object from model text.

    Strict parse first, then the substring between the first ``{`` and the
    last ``}``. Anything else is Unparseable.

    Args:
        raw: Text returned by the model.

    Returns:
        Parsed with the object, or Unparseable with a short reason.
    """
    if not raw or not raw.strip():
        return Unparseable("empty output")

    value = _loads_object(raw.strip())
    if value is not None:
        return Parsed(value)

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        return Unparseable("no JSON object in output")

    value = _loads_object(raw[start : end + 1])
    if value is not None:
        return Parsed(value)
    return Unparseable("invalid JSON object in output")


def parse_first_object(texts: list[str]) -> ParseOutcome:
    """Try each candidate text in order and return the first Parsed outcome."""
    outcome: ParseOutcome = Unparseable("empty output")
    for text in texts:
        outcome = parse_json_object(text)
        if isinstance(outcome, Parsed):
            return outcome
    return outcome
