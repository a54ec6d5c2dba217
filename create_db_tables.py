"""Database setup script - creates the dbo schema used by the verification API."""

import asyncio

import asyncpg
from dotenv import load_dotenv

load_dotenv()

from core.settings import db_settings

CREATE_SCHEMA_SQL = [
    "CREATE SCHEMA IF NOT EXISTS dbo;",
    "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
]

CREATE_TABLES_SQL = {
    "User": """
        CREATE TABLE IF NOT EXISTS dbo."User" (
            "UserId" TEXT PRIMARY KEY,
            "Name" VARCHAR(100) NOT NULL,
            "Email" VARCHAR(254) NOT NULL,
            "Active" BOOLEAN NOT NULL DEFAULT true
        );
    """,
    "Verification": """
        CREATE TABLE IF NOT EXISTS dbo."Verification" (
            "Id" UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            "Type" VARCHAR(16) NOT NULL
                CHECK ("Type" IN ('PSA', 'PHILSYS', 'VOTERS', 'UNKNOWN')),
            "UserId" TEXT NOT NULL REFERENCES dbo."User" ("UserId"),
            "Data" JSONB NOT NULL DEFAULT '{}',
            "Status" VARCHAR(16) NOT NULL
                CHECK ("Status" IN ('AUTHENTIC', 'FAKE', 'ERROR')),
            "Timestamp" TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            "Active" BOOLEAN NOT NULL DEFAULT true
        );
    """,
    "PSARecords": """
        CREATE TABLE IF NOT EXISTS dbo."PSARecords" (
            "Id" BIGSERIAL PRIMARY KEY,
            "FirstName" VARCHAR(100) NOT NULL,
            "MiddleName" VARCHAR(100),
            "LastName" VARCHAR(100) NOT NULL,
            "Sex" VARCHAR(16),
            "DateOfBirth" DATE NOT NULL,
            "PlaceOfBirth" VARCHAR(255)
        );
    """,
    "VotersRecords": """
        CREATE TABLE IF NOT EXISTS dbo."VotersRecords" (
            "Id" BIGSERIAL PRIMARY KEY,
            "PrecinctNumber" VARCHAR(32) NOT NULL,
            "FirstName" VARCHAR(100) NOT NULL,
            "MiddleName" VARCHAR(100),
            "LastName" VARCHAR(100) NOT NULL,
            "Address" VARCHAR(255)
        );
    """,
}

# "User_Active_Email" is the constraint name the repository maps to DuplicateUser
CREATE_INDEXES_SQL = [
    'CREATE UNIQUE INDEX IF NOT EXISTS "User_Active_Email" ON dbo."User" (LOWER("Email")) WHERE "Active" = true;',
    'CREATE INDEX IF NOT EXISTS idx_verification_user_timestamp ON dbo."Verification" ("UserId", "Timestamp" DESC);',
    'CREATE INDEX IF NOT EXISTS idx_psa_records_dob ON dbo."PSARecords" ("DateOfBirth");',
    'CREATE INDEX IF NOT EXISTS idx_voters_records_precinct ON dbo."VotersRecords" (LOWER(TRIM("PrecinctNumber")));',
]


async def setup_database():
    """Connect to PostgreSQL and create tables with indexes."""
    print(f"🔧 Connecting to {db_settings.DB_HOST}:{db_settings.DB_PORT}/{db_settings.DB_NAME}...")

    conn = await asyncpg.connect(
        host=db_settings.DB_HOST,
        port=db_settings.DB_PORT,
        database=db_settings.DB_NAME,
        user=db_settings.DB_USER,
        password=db_settings.DB_PASSWORD,
        timeout=10.0,
    )
    print("✅ Connected successfully!")

    try:
        for sql in CREATE_SCHEMA_SQL:
            await conn.execute(sql)

        print("\n📋 Creating tables...")
        for table, sql in CREATE_TABLES_SQL.items():
            await conn.execute(sql)
            print(f"  ✅ dbo.{table}")

        print("\n🔍 Creating indexes...")
        for sql in CREATE_INDEXES_SQL:
            await conn.execute(sql)

        for table in CREATE_TABLES_SQL:
            count = await conn.fetchval(f'SELECT COUNT(*) FROM dbo."{table}"')
            print(f"📈 dbo.{table}: {count} rows")
    finally:
        await conn.close()

    print("\n🎉 Database setup complete!")


if __name__ == "__main__":
    asyncio.run(setup_database())
