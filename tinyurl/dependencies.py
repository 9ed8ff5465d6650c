"""Dependency injection with a singleton service manager.

Shared resources (settings, logger, Redis client, snowflake generator) are built
once per process by ServiceManager. Each request gets a RequestContext that pairs
them with its own database session.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tinyurl.config import Settings, get_settings
from tinyurl.database import get_db
from tinyurl.snowflake import SnowflakeIdGenerator
from tinyurl.url_service import UrlService

# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    The snowflake generator lives here so every request in the process draws
    from one GeneratorState. Two generators with the same worker and
    datacenter ids in one process would mint colliding ids.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.cache = self._setup_redis()
            self.id_generator = self._setup_id_generator()
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("tinyurl")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    def _setup_redis(self) -> redis.Redis:
        return redis.from_url(self.settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    def _setup_id_generator(self) -> SnowflakeIdGenerator:
        """Build the process-wide generator; bad worker/datacenter ids fail startup."""
        generator = SnowflakeIdGenerator(
            worker_id=self.settings.WORKER_ID,
            datacenter_id=self.settings.DATACENTER_ID,
            epoch=self.settings.SNOWFLAKE_EPOCH_MS,
        )
        self.logger.info(
            f"Snowflake generator ready (datacenter={generator.datacenter_id}, "
            f"worker={generator.worker_id}, strategy={self.settings.ID_STRATEGY})"
        )
        return generator

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "cache"):
            await self.cache.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with shared resource access.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def cache(self) -> redis.Redis:
        return self.service_manager.cache

    @property
    def id_generator(self) -> SnowflakeIdGenerator:
        return self.service_manager.id_generator

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    return RequestContext(
        database=db,
        service_manager=manager,
        request_id=request_id,
        user_agent=user_agent,
        client_ip=client_ip,
    )


def get_url_service(ctx: RequestContext = Depends(get_request_context)) -> UrlService:
    return UrlService.from_context(ctx)
