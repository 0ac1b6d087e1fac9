"""
Valentine Backend: Surprise Storage Adapter
=============================================

What:  save() and find_by_id() over the surprises table.
How:   Each call opens its own unit of work from the injected Database and
       converts between SurpriseRecord and the ORM row.
Who:   Used by SurpriseService; built per request by get_surprise_store().

Error contract:
    disconnected          → StorageUnavailableError (both operations)
    insert rejected       → WriteFailureError
    other read failure    → DatabaseError
    id not present        → None (never an exception)
"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from valentine.database import Database, get_database
from valentine.exceptions import DatabaseError, WriteFailureError
from valentine.models.surprise import Surprise
from valentine.schemas.surprise import SurpriseRecord

logger = logging.getLogger(__name__)


class SurpriseStore:
    """Document-style persistence for surprises. No update or delete path exists."""

    def __init__(self, database: Database):
        self.database = database

    async def save(self, record: SurpriseRecord) -> None:
        """
        Insert one surprise.

        No uniqueness pre-check is made; a colliding id surfaces as a
        primary-key violation and is reported as WriteFailureError.
        """
        try:
            async with self.database.session() as session:
                session.add(Surprise.from_record(record))
        except SQLAlchemyError as e:
            logger.error("Insert failed for surprise %s: %s", record.id, e)
            raise WriteFailureError(
                context={"surprise_id": record.id, "error_type": type(e).__name__},
            )

    async def find_by_id(self, surprise_id: str) -> Optional[SurpriseRecord]:
        """Return the stored surprise, or None when no row has this id."""
        try:
            async with self.database.session() as session:
                result = await session.execute(
                    select(Surprise).where(Surprise.id == surprise_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Lookup failed for surprise %s: %s", surprise_id, e)
            raise DatabaseError(
                message="Could not read surprise",
                context={"surprise_id": surprise_id, "error_type": type(e).__name__},
            )

        if row is None:
            return None
        return row.to_record()


def get_surprise_store(database: Database = Depends(get_database)) -> SurpriseStore:
    """FastAPI dependency: a store bound to the process-wide database handle."""
    return SurpriseStore(database)
