"""Unit tests for PostgresRepository row mapping and query guards (fake pool)."""

from datetime import date, datetime, timezone

from docverify.database.repository import (
    COUNT_VERIFICATIONS_SQL,
    FIND_PSA_RECORD_SQL,
    LIST_VERIFICATIONS_SQL,
    PostgresRepository,
)
from docverify.models.dto import VerificationStatus, VerificationType

ROW = {
    "Id": "0b6f7a8e-3a43-4d1e-9d53-1f0c2a7b9e11",
    "Type": "PSA",
    "UserId": "u1",
    "Data": {"firstName": "JUAN"},
    "Status": "AUTHENTIC",
    "Timestamp": datetime(2025, 1, 1, tzinfo=timezone.utc),
    "Active": True,
    "UserName": "Juan Dela Cruz",
    "UserEmail": "juan@example.com",
    "total_rows": 7,
}


class FakePool:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.count = len(self.rows)
        self.calls = []

    async def fetch(self, sql, *args):
        self.calls.append((sql, args))
        return self.rows

    async def fetchrow(self, sql, *args):
        self.calls.append((sql, args))
        return self.rows[0] if self.rows else None

    async def fetchval(self, sql, *args):
        self.calls.append((sql, args))
        return self.count

    async def execute(self, sql, *args):
        self.calls.append((sql, args))


class FakeManager:
    def __init__(self, pool):
        self.pool = pool

    async def get_pool(self):
        return self.pool


class TestPostgresRepository:
    async def test_listing_maps_rows_and_total(self):
        pool = FakePool([ROW])
        page = await PostgresRepository(FakeManager(pool)).list_verifications_by_user(
            "  Juan ", ["PSA"], "u1", 10, 2
        )

        assert page.total == 7
        record = page.results[0]
        assert record.type is VerificationType.PSA
        assert record.status is VerificationStatus.AUTHENTIC
        assert record.user.email == "juan@example.com"

        sql, args = pool.calls[0]
        assert sql == LIST_VERIFICATIONS_SQL
        assert args == ("juan", ["PSA"], "u1", 10, 20)

    async def test_empty_listing(self):
        page = await PostgresRepository(FakeManager(FakePool())).list_verifications_by_user(
            "", ["PSA"], "u1", 10, 0
        )
        assert page.total == 0
        assert page.results == []

    async def test_page_past_the_end_still_reports_total(self):
        pool = FakePool()
        pool.count = 3
        page = await PostgresRepository(FakeManager(pool)).list_verifications_by_user(
            "", ["PSA"], "u1", 10, 5
        )
        assert page.total == 3
        assert page.results == []
        assert pool.calls[1][0] == COUNT_VERIFICATIONS_SQL

    async def test_psa_lookup_passes_date(self):
        pool = FakePool([{"FirstName": "JUAN"}])
        record = await PostgresRepository(FakeManager(pool)).find_psa_record(
            "JUAN", "DELACRUZ", "", "1990-01-01"
        )

        assert record == {"FirstName": "JUAN"}
        sql, args = pool.calls[0]
        assert sql == FIND_PSA_RECORD_SQL
        assert args == ("JUAN", "DELACRUZ", "", date(1990, 1, 1))

    async def test_psa_lookup_skips_query_for_unusable_input(self):
        pool = FakePool([{"FirstName": "JUAN"}])
        repo = PostgresRepository(FakeManager(pool))

        assert await repo.find_psa_record("JUAN", "DELACRUZ", "", "") is None
        assert await repo.find_psa_record(" ", "DELACRUZ", "", "1990-01-01") is None
        assert await repo.find_voter_record("", "MARIA", "SANTOS") is None
        assert pool.calls == []
