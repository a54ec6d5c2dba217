"""In-memory repository with the same semantics as PostgresRepository.

Used for local runs (``DB_BACKEND=memory``) and tests. Optionally seeded from
a JSON file shaped like::

    {
      "users": [{"userId": "u1", "name": "Juan", "email": "juan@example.com"}],
      "psaRecords": [{"firstName": "JUAN", "lastName": "DELACRUZ",
                      "sex": "Male", "dateOfBirth": "1990-01-01"}],
      "votersRecords": [{"precinctNumber": "0012A", "firstName": "MARIA",
                         "lastName": "SANTOS"}]
    }
"""

from __future__ import annotations

import itertools
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from docverify.core.exceptions import DuplicateUser
from docverify.models.dto import (
    User,
    UserSummary,
    VerificationPage,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)

logger = logging.getLogger(__name__)

LISTING_REQUIRED_KEYS = ("externalId", "fullName", "firstName", "lastName")
LISTING_SEARCH_KEYS = (
    "fullName",
    "firstName",
    "middleName",
    "lastName",
    "externalId",
    "address",
    "precinctNumber",
    "voterIdNumber",
    "otherNotes",
)


def _clean(value: Any) -> str:
    return str(value or "").strip().lower()


def _matches_psa(
    record: dict[str, Any], first_name: str, last_name: str, sex: str, date_of_birth: str
) -> bool:
    first, last = _clean(first_name), _clean(last_name)
    if not first or not last or not date_of_birth:
        return False
    if first not in _clean(record.get("firstName")):
        return False
    if last not in _clean(record.get("lastName")):
        return False
    if str(record.get("dateOfBirth") or "") != date_of_birth:
        return False
    return not sex or _clean(record.get("sex")) == _clean(sex)


def _matches_voter(
    record: dict[str, Any], precinct_number: str, first_name: str, last_name: str
) -> bool:
    if not _clean(precinct_number) or not _clean(first_name) or not _clean(last_name):
        return False
    return (
        _clean(record.get("precinctNumber")) == _clean(precinct_number)
        and _clean(record.get("firstName")) == _clean(first_name)
        and _clean(record.get("lastName")) == _clean(last_name)
    )


class InMemoryRepository:
    def __init__(
        self,
        users: Sequence[User] = (),
        psa_records: Sequence[dict[str, Any]] = (),
        voter_records: Sequence[dict[str, Any]] = (),
    ):
        self.users: dict[str, User] = {u.user_id: u for u in users}
        self.psa_records = list(psa_records)
        self.voter_records = list(voter_records)
        self.verifications: dict[str, VerificationRecord] = {}
        self._order: dict[str, int] = {}
        self._sequence = itertools.count()

    @classmethod
    def from_seed_file(cls, path: str | Path) -> "InMemoryRepository":
        seed = json.loads(Path(path).read_text(encoding="utf-8"))
        repo = cls(
            users=[User.model_validate(u) for u in seed.get("users", [])],
            psa_records=seed.get("psaRecords", []),
            voter_records=seed.get("votersRecords", []),
        )
        logger.info(
            "Seeded in-memory repository: %d users, %d PSA records, %d voter records",
            len(repo.users),
            len(repo.psa_records),
            len(repo.voter_records),
        )
        return repo

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user if user and user.active else None

    async def update_user(self, user_id: str, name: str, email: str) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        for other in self.users.values():
            if other.user_id != user_id and other.active and _clean(other.email) == _clean(email):
                raise DuplicateUser(email)
        updated = user.model_copy(update={"name": name, "email": email})
        self.users[user_id] = updated
        return updated

    async def get_verification_by_id(
        self, verification_id: str
    ) -> Optional[VerificationRecord]:
        return self.verifications.get(verification_id)

    async def list_verifications_by_user(
        self,
        filter_text: str,
        types: Sequence[str],
        user_id: str,
        page_size: int,
        page_index: int,
    ) -> VerificationPage:
        needle = _clean(filter_text)
        wanted = set(types)
        matches = []
        for record in self.verifications.values():
            if record.user_id != user_id or not record.active:
                continue
            if record.type.value not in wanted:
                continue
            if not all(str(record.data.get(k) or "") for k in LISTING_REQUIRED_KEYS):
                continue
            if needle and not any(
                needle in _clean(record.data.get(k)) for k in LISTING_SEARCH_KEYS
            ):
                continue
            matches.append(record)

        matches.sort(key=lambda r: (r.timestamp, self._order[r.id]), reverse=True)
        start = page_index * page_size
        user = self.users.get(user_id)
        summary = (
            UserSummary(user_id=user.user_id, name=user.name, email=user.email)
            if user
            else None
        )
        return VerificationPage(
            total=len(matches),
            results=[
                r.model_copy(update={"user": summary})
                for r in matches[start : start + page_size]
            ],
        )

    async def create_verification(
        self,
        verification_type: VerificationType,
        user_id: str,
        data: dict[str, Any],
        status: VerificationStatus,
    ) -> VerificationRecord:
        record = VerificationRecord(
            id=str(uuid.uuid4()),
            type=verification_type,
            user_id=user_id,
            data=dict(data),
            status=status,
            timestamp=datetime.now(timezone.utc),
        )
        self.verifications[record.id] = record
        self._order[record.id] = next(self._sequence)
        return record

    async def delete_verification(self, verification_id: str) -> None:
        record = self.verifications.get(verification_id)
        if record is not None:
            self.verifications[verification_id] = record.model_copy(update={"active": False})

    async def find_psa_record(
        self, first_name: str, last_name: str, sex: str, date_of_birth: str
    ) -> Optional[dict[str, Any]]:
        for record in self.psa_records:
            if _matches_psa(record, first_name, last_name, sex, date_of_birth):
                return record
        return None

    async def find_voter_record(
        self, precinct_number: str, first_name: str, last_name: str
    ) -> Optional[dict[str, Any]]:
        for record in self.voter_records:
            if _matches_voter(record, precinct_number, first_name, last_name):
                return record
        return None

    async def health_check(self) -> dict[str, Any]:
        return {"healthy": True, "error": None, "latency_ms": 0.0}
