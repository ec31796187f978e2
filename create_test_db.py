"""
Create the PostgreSQL test database and its tables.

The test suite runs on SQLite by default; run this once and point
TEST_DATABASE_URL at the database it prints to test against PostgreSQL.
"""
import asyncio
import os
import asyncpg
from sqlalchemy.ext.asyncio import create_async_engine
from memberhub.core.logging import logger
from memberhub.db.session import Base
import memberhub.db.models  # noqa: F401  registers every table on Base.metadata

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_NAME = os.getenv("TEST_DB_NAME", "memberhub_test")

TEST_DATABASE_URL = f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


async def create_database() -> None:
    conn = await asyncpg.connect(
        user=DB_USER, password=DB_PASSWORD, host=DB_HOST, port=DB_PORT, database="postgres"
    )
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", DB_NAME)
        if exists:
            logger.info(f"Database '{DB_NAME}' already exists")
        else:
            await conn.execute(f'CREATE DATABASE "{DB_NAME}"')
            logger.info(f"Database '{DB_NAME}' created")
    finally:
        await conn.close()


async def create_tables() -> None:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()
    logger.info(f"Created {len(Base.metadata.tables)} tables")


async def main():
    try:
        await create_database()
        await create_tables()
    except Exception as e:
        logger.error(f"Test database setup failed: {e}")
        raise SystemExit(1)
    logger.info(f"Test database ready; run: TEST_DATABASE_URL={TEST_DATABASE_URL} pytest")


if __name__ == "__main__":
    asyncio.run(main())
