"""
Typed contracts shared across the extraction pipeline and the services.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from docverify.utils.dates import normalize_iso_date

# Synonyms a model sometimes answers with instead of the requested keys
_LEGACY_KEYS = {
    "type": "documentType",
    "id": "externalId",
    "name": "fullName",
    "precintNo": "precinctNumber",
    "votersIdNumber": "voterIdNumber",
    "others": "otherNotes",
}

_SEX_VALUES = {
    "male": "Male",
    "m": "Male",
    "lalaki": "Male",
    "female": "Female",
    "f": "Female",
    "babae": "Female",
}


def normalize_sex(value: Any) -> str:
    """Coerce a free-text sex answer into "Male", "Female" or ""."""
    if not isinstance(value, str):
        return ""
    return _SEX_VALUES.get(value.strip().strip(".").lower(), "")


class ExtractionResult(BaseModel):
    """
    Canonical output of the extraction pipeline.

    Every field is always present; an empty string means "not determined".
    Instances are frozen so a cached result is reused verbatim.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    document_type: str = ""
    external_id: str = ""
    full_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    sex: str = ""
    date_of_birth: str = ""
    place_of_birth: str = ""
    address: str = ""
    precinct_number: str = ""
    voter_id_number: str = ""
    other_notes: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_string(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if not isinstance(value, str):
            return ""
        return value.strip()

    @field_validator("sex")
    @classmethod
    def constrain_sex(cls, value: str) -> str:
        return normalize_sex(value)

    @field_validator("date_of_birth")
    @classmethod
    def constrain_date_of_birth(cls, value: str) -> str:
        return normalize_iso_date(value)

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "ExtractionResult":
        """Build from a provider JSON object, accepting legacy key names."""
        data: dict[str, Any] = {}
        for key, value in payload.items():
            canonical = _LEGACY_KEYS.get(key, key)
            if canonical in data and data[canonical] and key != canonical:
                continue
            data[canonical] = value
        return cls.model_validate(data)

    def to_payload(self, *, include_document_type: bool = True) -> dict[str, str]:
        """Serialize with camelCase keys, optionally stripping documentType."""
        exclude = None if include_document_type else {"document_type"}
        return self.model_dump(by_alias=True, exclude=exclude)


class StructuredCodePayload(BaseModel):
    """
    Result of the QR short-circuit pass.

    When ``found`` is false both ``structured`` and ``raw`` are empty.
    """

    found: bool = False
    structured: dict[str, Any] | None = None
    raw: str = ""

    @classmethod
    def not_found(cls) -> "StructuredCodePayload":
        return cls(found=False, structured=None, raw="")


class VerificationType(str, Enum):
    PSA = "PSA"
    PHILSYS = "PHILSYS"
    VOTERS = "VOTERS"
    UNKNOWN = "UNKNOWN"


class VerificationStatus(str, Enum):
    AUTHENTIC = "AUTHENTIC"
    FAKE = "FAKE"
    ERROR = "ERROR"


class RecordModel(BaseModel):
    """Base for persisted entities, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(RecordModel):
    user_id: str
    name: str = ""
    email: str = ""
    active: bool = True


class UserSummary(RecordModel):
    user_id: str
    name: str = ""
    email: str = ""


class VerificationRecord(RecordModel):
    """One persisted verification attempt. Only ``active`` ever changes."""

    id: str
    type: VerificationType
    user_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    status: VerificationStatus
    timestamp: datetime
    active: bool = True
    user: UserSummary | None = None


class VerificationPage(RecordModel):
    total: int = 0
    results: list[VerificationRecord] = Field(default_factory=list)


class ApiKey(BaseModel):
    api_key: str


class PsaVerifyRequest(BaseModel):
    """Normalized PhilSys verification request fields."""

    d: str
    dob: str
    pcn: str
    pob: str
    fn: str
    ln: str
    mn: str
    s: str
    sf: str = ""


class RemoteVerdict(BaseModel):
    """Outcome of one remote verifier call (or cache hit)."""

    status: VerificationStatus
    payload: Any = None
    message: str | None = None
    cached: bool = False
