"""FastAPI route definitions for the tinyurl REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/domains
        ├─ DomainCreate (request body)
        └─ DomainResponse (201) or 409/422

    POST /generate
        ├─ GenerateRequest (request body)
        └─ GenerateResponse (201) or 400/422/503

    GET  /:short_code
        └─ 307 Redirect or 404/410

Error Mapping
=============
::
    InvalidCodeError        → 404
    RecordNotFoundError     → 404
    LinkExpiredError        → 410
    DomainNotFoundError     → 400
    ValueError (expiry)     → 422
    ClockError              → 503 (clock regression or clock out of range)
    duplicate domain        → 409

Key Behaviours
===============
- The redirect keeps incoming query parameters (see build_redirect_url).
- 307 redirects preserve the HTTP method.
- Handlers only translate errors; UrlService does the logging and metrics.
- Error bodies carry {"detail": {"code": <ErrorCode>, "message": ...}}. Request
  body validation failures keep FastAPI's own 422 shape.

Endpoints:
    /health:  Health check for monitoring.
    /api/domains:  Register a domain short URLs may be minted under.
    /generate:  Mint a short URL.
    /:code:  Redirect to original URL.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from tinyurl.dependencies import RequestContext, get_request_context, get_url_service
from tinyurl.enums import ErrorCode, HealthStatus
from tinyurl.exceptions import (
    ClockError,
    DomainNotFoundError,
    InvalidCodeError,
    LinkExpiredError,
    RecordNotFoundError,
    TinyUrlError,
)
from tinyurl.repository import DomainRepository
from tinyurl.schemas import DomainCreate, DomainResponse, GenerateRequest, GenerateResponse, HealthResponse
from tinyurl.url_service import UrlService, build_redirect_url

__all__ = ["router"]

router = APIRouter()


def _error_detail(code: ErrorCode, message: str) -> dict[str, str]:
    return {"code": code, "message": message}


def _http_error(status_code: int, exc: TinyUrlError) -> HTTPException:
    return HTTPException(status_code=status_code, detail=_error_detail(exc.code, str(exc)))


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/domains", response_model=DomainResponse, status_code=201, tags=["domains"])
async def register_domain(
    payload: DomainCreate,
    ctx: RequestContext = Depends(get_request_context),
) -> DomainResponse:
    repository = DomainRepository(ctx.database)
    try:
        entry = await repository.register(payload.domain)
        await ctx.database.commit()
    except IntegrityError as exc:
        await ctx.database.rollback()
        ctx.logger.warning(f"Domain already registered: {payload.domain}")
        raise HTTPException(
            status_code=409,
            detail=_error_detail(ErrorCode.DOMAIN_EXISTS, f"Domain '{payload.domain}' is already registered"),
        ) from exc

    await ctx.database.refresh(entry)
    ctx.logger.info(f"Domain registered: {entry.domain} (id={entry.id})")
    return DomainResponse.model_validate(entry)


@router.post("/generate", response_model=GenerateResponse, status_code=201, tags=["urls"])
async def generate(
    payload: GenerateRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: UrlService = Depends(get_url_service),
) -> GenerateResponse:
    try:
        short_url = await service.generate(payload.url, payload.domain, payload.expire_date)
    except DomainNotFoundError as exc:
        raise _http_error(400, exc) from exc
    except ClockError as exc:
        raise _http_error(503, exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=_error_detail(ErrorCode.INVALID_EXPIRE_DATE, str(exc))) from exc

    ctx.logger.info(f"Generate completed in {ctx.get_duration():.1f}ms")
    return GenerateResponse(short_url=short_url, short_code=short_url.removeprefix(payload.domain))


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    service: UrlService = Depends(get_url_service),
) -> RedirectResponse:
    try:
        origin_url = await service.resolve(short_code)
    except (InvalidCodeError, RecordNotFoundError) as exc:
        raise _http_error(404, exc) from exc
    except LinkExpiredError as exc:
        raise _http_error(410, exc) from exc

    return RedirectResponse(
        url=build_redirect_url(origin_url, request.query_params.multi_items()),
        status_code=307,
    )
