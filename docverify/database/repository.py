"""PostgreSQL implementation of the persistence interface (asyncpg).

Tables live in the ``dbo`` schema (see ``create_db_tables.py``). Verification
payloads are jsonb; the pool's connection init registers a dict codec.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

import asyncpg

from docverify.core.exceptions import DuplicateUser
from docverify.database.manager import DatabaseManager
from docverify.models.dto import (
    User,
    UserSummary,
    VerificationPage,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_CONSTRAINT = "User_Active_Email"

SELECT_USER_SQL = """
    SELECT "UserId", "Name", "Email", "Active"
    FROM dbo."User"
    WHERE "UserId" = $1 AND "Active" = true
    LIMIT 1;
"""

UPDATE_USER_SQL = """
    UPDATE dbo."User"
    SET "Name" = $2, "Email" = $3
    WHERE "UserId" = $1
    RETURNING "UserId", "Name", "Email", "Active";
"""

SELECT_VERIFICATION_SQL = """
    SELECT "Id"::text AS "Id", "Type", "UserId", "Data", "Status", "Timestamp", "Active"
    FROM dbo."Verification"
    WHERE "Id"::text = $1
    LIMIT 1;
"""

INSERT_VERIFICATION_SQL = """
    INSERT INTO dbo."Verification" ("Type", "UserId", "Data", "Status")
    VALUES ($1, $2, $3::jsonb, $4)
    RETURNING "Id"::text AS "Id", "Type", "UserId", "Data", "Status", "Timestamp", "Active";
"""

SOFT_DELETE_VERIFICATION_SQL = """
    UPDATE dbo."Verification" SET "Active" = false WHERE "Id"::text = $1;
"""

# $1 filter (lowercased, trimmed), $2 types, $3 user
LISTING_WHERE = """
    WHERE v."UserId" = $3
      AND COALESCE(v."Data"->>'externalId', '') <> ''
      AND COALESCE(v."Data"->>'fullName', '') <> ''
      AND COALESCE(v."Data"->>'firstName', '') <> ''
      AND COALESCE(v."Data"->>'lastName', '') <> ''
      AND (
        $1 = '' OR
        strpos(LOWER(COALESCE(v."Data"->>'fullName', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'firstName', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'middleName', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'lastName', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'externalId', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'address', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'precinctNumber', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'voterIdNumber', '')), $1) > 0 OR
        strpos(LOWER(COALESCE(v."Data"->>'otherNotes', '')), $1) > 0
      )
      AND v."Type" = ANY($2::text[])
      AND v."Active" = true
"""

# $4 limit, $5 offset
LIST_VERIFICATIONS_SQL = """
    SELECT
        v."Id"::text AS "Id", v."Type", v."UserId", v."Data", v."Status",
        v."Timestamp", v."Active",
        u."Name" AS "UserName", u."Email" AS "UserEmail",
        COUNT(*) OVER() AS total_rows
    FROM dbo."Verification" v
    LEFT JOIN dbo."User" u ON v."UserId" = u."UserId"
""" + LISTING_WHERE + """
    ORDER BY v."Timestamp" DESC
    LIMIT $4 OFFSET $5;
"""

COUNT_VERIFICATIONS_SQL = """
    SELECT COUNT(*)
    FROM dbo."Verification" v
""" + LISTING_WHERE

FIND_PSA_RECORD_SQL = """
    SELECT *
    FROM dbo."PSARecords"
    WHERE strpos(TRIM(LOWER("FirstName")), TRIM(LOWER($1))) > 0
      AND strpos(TRIM(LOWER("LastName")), TRIM(LOWER($2))) > 0
      AND "DateOfBirth" = $4
      AND ($3 = '' OR TRIM(LOWER("Sex")) = TRIM(LOWER($3)))
    LIMIT 1;
"""

FIND_VOTER_RECORD_SQL = """
    SELECT *
    FROM dbo."VotersRecords"
    WHERE TRIM(LOWER("PrecinctNumber")) = TRIM(LOWER($1))
      AND TRIM(LOWER("FirstName")) = TRIM(LOWER($2))
      AND TRIM(LOWER("LastName")) = TRIM(LOWER($3))
    LIMIT 1;
"""


def _to_user(row: asyncpg.Record) -> User:
    return User(
        user_id=str(row["UserId"]),
        name=row["Name"] or "",
        email=row["Email"] or "",
        active=row["Active"],
    )


def _to_verification(row: asyncpg.Record, with_user: bool = False) -> VerificationRecord:
    user = None
    if with_user and row["UserName"] is not None:
        user = UserSummary(
            user_id=str(row["UserId"]), name=row["UserName"], email=row["UserEmail"] or ""
        )
    return VerificationRecord(
        id=row["Id"],
        type=VerificationType(row["Type"]),
        user_id=str(row["UserId"]),
        data=row["Data"] or {},
        status=VerificationStatus(row["Status"]),
        timestamp=row["Timestamp"],
        active=row["Active"],
        user=user,
    )


def _parse_iso(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


class PostgresRepository:
    """Repository over the asyncpg pool owned by DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        pool = await self.db_manager.get_pool()
        row = await pool.fetchrow(SELECT_USER_SQL, user_id)
        return _to_user(row) if row else None

    async def update_user(self, user_id: str, name: str, email: str) -> Optional[User]:
        pool = await self.db_manager.get_pool()
        try:
            row = await pool.fetchrow(UPDATE_USER_SQL, user_id, name, email)
        except asyncpg.UniqueViolationError as e:
            if e.constraint_name == DUPLICATE_EMAIL_CONSTRAINT:
                raise DuplicateUser(email) from e
            raise
        return _to_user(row) if row else None

    async def get_verification_by_id(
        self, verification_id: str
    ) -> Optional[VerificationRecord]:
        pool = await self.db_manager.get_pool()
        row = await pool.fetchrow(SELECT_VERIFICATION_SQL, verification_id)
        return _to_verification(row) if row else None

    async def list_verifications_by_user(
        self,
        filter_text: str,
        types: Sequence[str],
        user_id: str,
        page_size: int,
        page_index: int,
    ) -> VerificationPage:
        pool = await self.db_manager.get_pool()
        rows = await pool.fetch(
            LIST_VERIFICATIONS_SQL,
            (filter_text or "").strip().lower(),
            list(types),
            user_id,
            page_size,
            page_index * page_size,
        )
        if rows:
            total = int(rows[0]["total_rows"])
        elif page_index > 0:
            # window count is unavailable past the last page
            total = await pool.fetchval(
                COUNT_VERIFICATIONS_SQL, (filter_text or "").strip().lower(), list(types), user_id
            )
        else:
            total = 0
        return VerificationPage(
            total=total,
            results=[_to_verification(row, with_user=True) for row in rows],
        )

    async def create_verification(
        self,
        verification_type: VerificationType,
        user_id: str,
        data: dict[str, Any],
        status: VerificationStatus,
    ) -> VerificationRecord:
        pool = await self.db_manager.get_pool()
        row = await pool.fetchrow(
            INSERT_VERIFICATION_SQL,
            verification_type.value,
            user_id,
            data,
            status.value,
        )
        return _to_verification(row)

    async def delete_verification(self, verification_id: str) -> None:
        pool = await self.db_manager.get_pool()
        await pool.execute(SOFT_DELETE_VERIFICATION_SQL, verification_id)

    async def find_psa_record(
        self, first_name: str, last_name: str, sex: str, date_of_birth: str
    ) -> Optional[dict[str, Any]]:
        dob = _parse_iso(date_of_birth)
        if not first_name.strip() or not last_name.strip() or dob is None:
            return None
        pool = await self.db_manager.get_pool()
        row = await pool.fetchrow(FIND_PSA_RECORD_SQL, first_name, last_name, sex or "", dob)
        return dict(row) if row else None

    async def find_voter_record(
        self, precinct_number: str, first_name: str, last_name: str
    ) -> Optional[dict[str, Any]]:
        if not precinct_number or not first_name.strip() or not last_name.strip():
            return None
        pool = await self.db_manager.get_pool()
        row = await pool.fetchrow(
            FIND_VOTER_RECORD_SQL, precinct_number, first_name, last_name
        )
        return dict(row) if row else None

    async def health_check(self) -> dict[str, Any]:
        return await self.db_manager.health_check()
