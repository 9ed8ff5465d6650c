"""Pydantic schemas for request/response validation in the tinyurl service.

Schema Hierarchy
=================
::
    GenerateRequest (Input)
    ├─ url: str (validated URL)
    ├─ domain: str (registered domain, e.g. "t.ly/")
    └─ expire_date: str | None (ISO-8601)

    GenerateResponse (Output)
    ├─ short_url: str
    └─ short_code: str

    DomainCreate (Input) / DomainResponse (Output)

    HealthResponse (Output)
    ├─ status: str
    ├─ database: str
    └─ cache: str

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- expire_date is kept as text here; UrlService parses it so malformed dates
  surface as the service's own ValueError.
- CachedUrlPayload is the JSON stored in Redis for a resolved record.

Classes:
    GenerateRequest:  Input schema for minting a short URL.
    GenerateResponse:  Output schema for a minted short URL.
    DomainCreate:  Input schema for registering a domain.
    DomainResponse:  Output schema for a registered domain.
    HealthResponse:  Output schema for health checks.
    CachedUrlPayload:  Redis cache payload for a resolved record.
"""

import datetime

import validators
from pydantic import BaseModel, Field, field_validator

from tinyurl.enums import HealthStatus

__all__ = [
    "CachedUrlPayload",
    "DomainCreate",
    "DomainResponse",
    "GenerateRequest",
    "GenerateResponse",
    "HealthResponse",
]


class GenerateRequest(BaseModel):
    url: str
    domain: str = Field(..., min_length=1, max_length=255, examples=["t.ly/"])
    expire_date: str | None = Field(None, examples=["2030-12-31T23:59:59"])

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class GenerateResponse(BaseModel):
    short_url: str
    short_code: str


class DomainCreate(BaseModel):
    domain: str = Field(..., min_length=1, max_length=255)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        if any(c.isspace() for c in v):
            raise ValueError("Domain must not contain whitespace")
        return v


class DomainResponse(BaseModel):
    id: int
    domain: str
    create_time: datetime.datetime

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class CachedUrlPayload(BaseModel):
    """Redis cache payload for a resolved record."""

    id: int
    origin_url: str
    expire_time: datetime.datetime | None = None

    model_config = {"from_attributes": True}
