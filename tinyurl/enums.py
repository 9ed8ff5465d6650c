"""Shared enums for the tinyurl service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["CacheStatus", "ErrorCode", "HealthStatus", "IdStrategy", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class IdStrategy(StrEnum):
    """How a new record gets its identifier.

    AUTO_INCREMENT lets the store assign the key on insert; SNOWFLAKE mints it
    with the node-local generator before inserting.
    """

    SNOWFLAKE = "snowflake"
    AUTO_INCREMENT = "auto_increment"


class ErrorCode(StrEnum):
    """Machine-readable codes returned in HTTP error bodies; every TinyUrlError carries one."""

    CLOCK_REGRESSION = "clock_regression"
    INVALID_CODE = "invalid_code"
    DOMAIN_NOT_EXISTS = "domain_not_exists"
    RECORD_NOT_EXISTS = "record_not_exists"
    LINK_EXPIRED = "link_expired"
    CLOCK_OUT_OF_RANGE = "clock_out_of_range"
    DOMAIN_EXISTS = "domain_exists"
    INVALID_EXPIRE_DATE = "invalid_expire_date"
