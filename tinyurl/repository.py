"""Data access for url records and the domain registry.

Repositories only stage work on the session they are given. Committing or
rolling back is the caller's job, so that id assignment and record insertion
land in the same transaction.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tinyurl.models import Domain, UrlRecord

__all__ = ["DomainRepository", "UrlRepository"]


class UrlRepository:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def insert(self, record: UrlRecord) -> int:
        """Insert a record and return the key the store assigned to it."""
        record.id = None
        self._db.add(record)
        await self._db.flush()
        return record.id

    async def insert_with_id(self, record: UrlRecord) -> None:
        """Insert a record whose id was assigned before the call."""
        assert record.id is not None, "record.id must be set for insert_with_id"
        self._db.add(record)
        await self._db.flush()

    async def select_by_id(self, record_id: int) -> UrlRecord | None:
        result = await self._db.execute(select(UrlRecord).where(UrlRecord.id == record_id))
        return result.scalar_one_or_none()


class DomainRepository:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def lookup(self, domain: str) -> int | None:
        """Return the registration id of ``domain``, or None if it is not registered."""
        result = await self._db.execute(select(Domain.id).where(Domain.domain == domain))
        return result.scalar_one_or_none()

    async def register(self, domain: str) -> Domain:
        entry = Domain(domain=domain)
        self._db.add(entry)
        await self._db.flush()
        return entry
