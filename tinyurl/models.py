"""SQLAlchemy ORM models for the tinyurl service.

Data Model Layout
=================
::
    url table
    ├─ id (BIGINT PRIMARY KEY)      store-assigned or snowflake id
    ├─ origin_url (TEXT NOT NULL)
    ├─ hash (CHAR(32), INDEXED)     md5 hex digest of origin_url
    ├─ domain (VARCHAR(255))        domain the short URL was minted under
    ├─ create_time (TIMESTAMPTZ)
    └─ expire_time (TIMESTAMPTZ, NULL)

    domain table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ domain (VARCHAR(255) UNIQUE)
    └─ create_time (TIMESTAMPTZ)

How to Use
===========
**Step 1: Import**::
    from tinyurl.models import Domain, UrlRecord

**Step 2: Query a record**::
    record = await db.get(UrlRecord, 42)

Key Behaviours
===============
- url.id autoincrements only when the deployment uses ID_STRATEGY=auto_increment;
  snowflake deployments always insert an explicit id.
- Records are written once by UrlService.generate and never updated.
- create_time and expire_time are timezone-aware (UTC).

Classes:
    UrlRecord:  A short code's target URL and metadata.
    Domain:  A domain short URLs may be minted under.
"""

import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tinyurl.database import Base

__all__ = ["Domain", "UrlRecord"]

# SQLite only autoincrements a column declared exactly as INTEGER PRIMARY KEY.
_BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class UrlRecord(Base):
    __tablename__ = "url"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    origin_url: Mapped[str] = mapped_column(Text, nullable=False)
    hash: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    create_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expire_time: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<UrlRecord(id={self.id}, domain='{self.domain}', origin_url='{self.origin_url}')>"


class Domain(Base):
    __tablename__ = "domain"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    create_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Domain(id={self.id}, domain='{self.domain}')>"
