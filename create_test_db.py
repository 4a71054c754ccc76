"""
Create the PostgreSQL test database and schema.

The test suite defaults to a throwaway SQLite file; run this first to test against
PostgreSQL, then export TEST_DATABASE_URL with the URL it prints.
"""
import asyncio
import os

import asyncpg
from sqlalchemy.ext.asyncio import create_async_engine

from eventhub.db.session import Base
import eventhub.db.models  # noqa: F401  registers every table on Base.metadata

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_NAME = os.getenv("TEST_DB_NAME", "eventhub_test")

TEST_DATABASE_URL = f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


async def create_database() -> None:
    """Create the test database unless it already exists."""
    conn = await asyncpg.connect(
        user=DB_USER, password=DB_PASSWORD, host=DB_HOST, port=DB_PORT, database="postgres"
    )
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", DB_NAME)
        if exists:
            print(f"Database '{DB_NAME}' already exists")
        else:
            await conn.execute(f'CREATE DATABASE "{DB_NAME}"')
            print(f"Database '{DB_NAME}' created")
    finally:
        await conn.close()


async def create_tables() -> None:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()
    print("Tables created")


async def main():
    await create_database()
    await create_tables()
    print(f"\nexport TEST_DATABASE_URL={TEST_DATABASE_URL}")


if __name__ == "__main__":
    asyncio.run(main())
