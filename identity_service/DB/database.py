"""Database configuration for the identity service."""

from sqlalchemy.orm import declarative_base

from identity_service.config import settings
from shared import db_manager

engine, AsyncSessionLocal = db_manager.create_engine_from_settings(settings)
get_db = db_manager.get_db

Base = declarative_base()


async def create_tables() -> None:
    """Create missing tables; used at startup when DB_AUTO_CREATE is on."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
