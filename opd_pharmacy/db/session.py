# opd_pharmacy/db/session.py
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from opd_pharmacy.core.config import settings


def make_engine(db_uri: str, *, echo: bool = False) -> AsyncEngine:
    if db_uri.startswith("sqlite"):
        # SQLite: no pool sizing, file locks do the serialising
        return create_async_engine(
            db_uri,
            echo=echo,
            connect_args={"timeout": 30},
        )
    return create_async_engine(
        db_uri,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
    )


def make_sessionmaker(eng: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=eng,
        autoflush=False,
        expire_on_commit=False,
    )


engine: AsyncEngine = make_engine(settings.SQLALCHEMY_DATABASE_URI,
                                  echo=settings.DB_ECHO)

SessionLocal = make_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as db:
        yield db
