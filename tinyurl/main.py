"""FastAPI application entry point for the tinyurl service.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ init_db()   │
    │ manager     │
    │ .initialize │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ cleanup()   │
    │ close_db()  │
    └─────────────┘

How to Use
===========
**Step 1: Run with uvicorn**::
    uvicorn tinyurl.main:app --host 0.0.0.0 --port 8000

**Step 2: Register a domain and mint a short URL**::
    curl -X POST http://localhost:8000/api/domains \
         -H "Content-Type: application/json" -d '{"domain": "t.ly/"}'
    curl -X POST http://localhost:8000/generate \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com/page", "domain": "t.ly/"}'

Key Behaviours
===============
- Database tables are created automatically on startup.
- A WORKER_ID or DATACENTER_ID outside its bit width aborts startup.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from tinyurl.config import get_settings
from tinyurl.database import close_db, init_db
from tinyurl.dependencies import _service_manager
from tinyurl.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Short URL minting and resolution service",
    lifespan=lifespan,
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
