# opd_pharmacy/db/init_db.py
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from opd_pharmacy.db.base import Base
# Import all models so metadata is complete for create_all()
from opd_pharmacy import models  # noqa: F401

logger = logging.getLogger(__name__)


async def init_db(eng: AsyncEngine) -> None:
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured (%d tables)",
                len(Base.metadata.tables))


async def drop_db(eng: AsyncEngine) -> None:
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
