"""tinyurl Service Layer - Core Business Logic

This module mints short URLs for submitted URLs and resolves short codes back to
the URLs they stand for.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────────┐
    │                        UrlService                            │
    │  ┌──────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │ SnowflakeId-     │  │  Base62 codec   │  │ Repositories │ │
    │  │ Generator        │  │                 │  │              │ │
    │  │ • next_id()      │  │ • encode()      │  │ • url        │ │
    │  │   (locked)       │  │ • decode()      │  │ • domain     │ │
    │  └──────────────────┘  └─────────────────┘  └──────────────┘ │
    └──────────────────────────────────────────────────────────────┘
                │                                      │
                ▼                                      ▼
    ┌─────────────────┐                    ┌─────────────────┐
    │     Redis       │                    │   PostgreSQL    │
    │ (resolve cache) │                    │  (url, domain)  │
    └─────────────────┘                    └─────────────────┘

Generate Flow
-------------
::
    ┌─────────────┐
    │ generate()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐   unknown   ┌─────────────────────┐
    │ lookup domain│ ──────────▶ │ DomainNotFoundError │
    └──────┬──────┘             └─────────────────────┘
           ▼
    ┌─────────────┐
    │ parse expire │  (ValueError on malformed input)
    └──────┬──────┘
           ▼
    ┌───────────────────────────────┐
    │ snowflake: next_id + insert    │
    │ auto_increment: insert → id    │
    └──────┬────────────────────────┘
           ▼
    ┌─────────────┐   failure   ┌──────────┐
    │   commit     │ ──────────▶ │ rollback │
    └──────┬──────┘             └──────────┘
           ▼
    domain + encode(id)

Resolve Flow
------------
::
    decode(code) ──▶ Redis url:<id> ── MISS ──▶ select_by_id ──▶ cache (TTL capped at expiry)
         │                │                          │
    InvalidCodeError     HIT                 RecordNotFoundError
                          ▼
                  expired? ── yes ──▶ LinkExpiredError
                          │ no
                          ▼
                     origin_url

Usage Examples
==============
```python
@router.post("/generate")
async def generate(payload: GenerateRequest, service: UrlService = Depends(get_url_service)):
    return await service.generate(payload.url, payload.domain, payload.expire_date)
```
"""

import datetime
import hashlib
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import redis.asyncio as redis
from prometheus_client import Counter, Histogram
from pydantic import ValidationError

from tinyurl import codec
from tinyurl.enums import CacheStatus, IdStrategy, RequestStatus
from tinyurl.exceptions import (
    ClockError,
    ClockRegressionError,
    DomainNotFoundError,
    InvalidCodeError,
    LinkExpiredError,
    RecordNotFoundError,
)
from tinyurl.models import UrlRecord
from tinyurl.repository import DomainRepository, UrlRepository
from tinyurl.schemas import CachedUrlPayload
from tinyurl.snowflake import parse_id

if TYPE_CHECKING:
    from tinyurl.dependencies import RequestContext

__all__ = ["UrlService", "build_redirect_url", "parse_expire_date"]


QUERY_SEPARATOR = "&"


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

GENERATE_REQUESTS_TOTAL = Counter(
    "tinyurl_generate_requests_total",
    "Total short URL generation requests",
    ["status"],
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "tinyurl_resolve_requests_total",
    "Total short code resolve requests",
    ["status", "cache_hit"],
)
GENERATE_DURATION = Histogram(
    "tinyurl_generate_duration_seconds",
    "Time taken to mint short URLs",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
RESOLVE_DURATION = Histogram(
    "tinyurl_resolve_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
CLOCK_REGRESSIONS_TOTAL = Counter(
    "tinyurl_clock_regressions_total",
    "Identifier requests refused because the wall clock moved backwards",
)


# ============================================================================
# HELPERS
# ============================================================================


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def parse_expire_date(
    value: str | datetime.datetime | None,
    now: datetime.datetime | None = None,
) -> datetime.datetime | None:
    """Parse an optional expiry date into an aware UTC datetime.

    Naive values are taken as UTC. An empty string means "no expiry".

    Raises:
        ValueError: If the text is not ISO-8601 or the date is not in the future.
    """
    if value is None or value == "":
        return None

    expire_time = value if isinstance(value, datetime.datetime) else datetime.datetime.fromisoformat(value)
    expire_time = _as_utc(expire_time)

    now = now or datetime.datetime.now(datetime.timezone.utc)
    if expire_time <= now:
        raise ValueError("Expiry date must be in the future.")
    return expire_time


def build_redirect_url(origin_url: str, params: Iterable[tuple[str, str]]) -> str:
    """Append incoming query parameters to a resolved URL.

    A trailing ``&`` on the stored URL is dropped first.

    Example:
        >>> build_redirect_url("https://example.com/?a=1&", [("b", "2")])
        'https://example.com/?a=1&b=2'
    """
    url = origin_url[:-1] if origin_url.endswith(QUERY_SEPARATOR) else origin_url
    query = urlencode(list(params))
    if not query:
        return url
    if url.endswith("?"):
        return f"{url}{query}"
    separator = QUERY_SEPARATOR if "?" in url else "?"
    return f"{url}{separator}{query}"


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class UrlService:
    """Mints and resolves short URLs.

    The service is created per request from a RequestContext: the database
    session is per request, while the cache client and the id generator are
    process-wide and shared.

    Example:
        >>> service = UrlService.from_context(ctx)
        >>> short_url = await service.generate("https://example.com/page", "t.ly/")
        >>> await service.resolve(short_url.removeprefix("t.ly/"))
        'https://example.com/page'
    """

    def __init__(self, ctx: "RequestContext"):
        self._db = ctx.database
        self._cache: redis.Redis | None = ctx.cache
        self._logger = ctx.logger
        self._settings = ctx.settings
        self._id_generator = ctx.id_generator
        self._strategy = IdStrategy(ctx.settings.ID_STRATEGY)
        self._urls = UrlRepository(self._db)
        self._domains = DomainRepository(self._db)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "UrlService":
        return cls(ctx)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def generate(
        self,
        origin_url: str,
        domain: str,
        expire_date: str | datetime.datetime | None = None,
    ) -> str:
        """Mint a short URL for ``origin_url`` under a registered ``domain``.

        Id assignment and the insert share one transaction; on any failure the
        session is rolled back and nothing is persisted.

        Returns:
            str: ``domain`` followed by the base62 code of the new record's id.

        Raises:
            DomainNotFoundError: If ``domain`` is not registered.
            ValueError: If ``expire_date`` is malformed or not in the future.
            ClockError: If the snowflake generator refuses to mint an id.
        """
        start_time = time.perf_counter()

        try:
            if await self._domains.lookup(domain) is None:
                raise DomainNotFoundError(domain)

            record = UrlRecord(
                origin_url=origin_url,
                hash=hashlib.md5(origin_url.encode("utf-8")).hexdigest(),
                domain=domain,
                create_time=datetime.datetime.now(datetime.timezone.utc),
                expire_time=parse_expire_date(expire_date),
            )
            record_id = await self._assign_and_insert(record)
            await self._db.commit()

        except (DomainNotFoundError, ValueError) as exc:
            await self._db.rollback()
            GENERATE_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"Short URL generation rejected: {exc}")
            raise

        except ClockError as exc:
            await self._db.rollback()
            if isinstance(exc, ClockRegressionError):
                CLOCK_REGRESSIONS_TOTAL.inc()
            GENERATE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short URL generation failed: {exc}")
            raise

        except Exception as exc:
            await self._db.rollback()
            GENERATE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short URL generation error: {exc}")
            raise

        finally:
            GENERATE_DURATION.observe(time.perf_counter() - start_time)

        short_code = codec.encode(record_id)

        GENERATE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short URL created: {domain}{short_code} (id={record_id}, strategy={self._strategy})")
        return f"{domain}{short_code}"

    async def resolve(self, short_code: str) -> str:
        """Return the original URL a short code stands for.

        Raises:
            InvalidCodeError: If the code is not a valid base62 identifier.
            RecordNotFoundError: If no record has the decoded id.
            LinkExpiredError: If the record's expire_time has elapsed.
        """
        start_time = time.perf_counter()
        cache_status = CacheStatus.MISS

        try:
            record_id = codec.decode(short_code)

            payload = await self._lookup_from_cache(record_id)
            if payload is not None:
                cache_status = CacheStatus.HIT
                self._logger.debug(f"Cache hit for {short_code}")
            else:
                record = await self._urls.select_by_id(record_id)
                if record is None:
                    raise RecordNotFoundError(short_code, record_id)
                payload = CachedUrlPayload.model_validate(record)
                await self._cache_payload(payload)

            if payload.expire_time is not None and _as_utc(payload.expire_time) <= datetime.datetime.now(
                datetime.timezone.utc
            ):
                raise LinkExpiredError(short_code)

        except (InvalidCodeError, RecordNotFoundError) as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=cache_status).inc()
            self._logger.warning(f"Short code not resolved: {exc}")
            raise

        except LinkExpiredError as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.EXPIRED, cache_hit=cache_status).inc()
            self._logger.warning(str(exc))
            raise

        except Exception as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, cache_hit=cache_status).inc()
            self._logger.error(f"Resolve error for {short_code}: {exc}")
            raise

        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)

        RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=cache_status).inc()
        return payload.origin_url

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _assign_and_insert(self, record: UrlRecord) -> int:
        if self._strategy is IdStrategy.SNOWFLAKE:
            assert self._id_generator is not None, "snowflake strategy needs an id generator"
            record.id = self._id_generator.next_id()
            self._logger.debug(f"Minted snowflake id {record.id}: {parse_id(record.id, self._id_generator.epoch)}")
            await self._urls.insert_with_id(record)
            return record.id
        return await self._urls.insert(record)

    async def _lookup_from_cache(self, record_id: int) -> CachedUrlPayload | None:
        if self._cache is None:
            return None

        cached_data = await self._cache.get(f"url:{record_id}")
        if not cached_data:
            return None

        try:
            return CachedUrlPayload.model_validate_json(cached_data)
        except ValidationError as exc:
            self._logger.error(f"Cache deserialization error for id {record_id}: {exc}")
            return None

    async def _cache_payload(self, payload: CachedUrlPayload) -> None:
        if self._cache is None:
            return

        ttl = self._settings.CACHE_TTL_SECONDS
        if payload.expire_time is not None:
            remaining = _as_utc(payload.expire_time) - datetime.datetime.now(datetime.timezone.utc)
            ttl = min(ttl, int(remaining.total_seconds()))
        if ttl <= 0:
            return

        await self._cache.set(f"url:{payload.id}", payload.model_dump_json(), ex=ttl)
