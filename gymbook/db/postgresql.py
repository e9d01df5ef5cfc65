from contextlib import asynccontextmanager

from sqlalchemy import BigInteger, Integer, MetaData
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from gymbook.core.config import DATABASE_URL, DB_SCHEMA, SQL_ECHO

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

# BIGINT on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    metadata = MetaData(schema=DB_SCHEMA)


async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession, commit: bool = True):
    """Commit on success, roll back on any error, but only when the caller owns the transaction.

    With ``commit=False`` the writes are flushed into the caller's open
    transaction and committing/rolling back is left to the caller.
    """
    try:
        yield db
        if commit:
            await db.commit()
    except Exception:
        if commit:
            await db.rollback()
        raise
