"""CasaLink API entry point."""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core.exceptions import CasaLinkException
from .core.logging import (
    RequestIdMiddleware,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .database import AsyncSessionLocal, engine
from .modules.staff import router as staff_router
from .modules.tenancy import router as tenants_router
from .modules.topology import router as topology_router
from .modules.visitor_access import router as visitors_router
from .modules.visitor_access.crud import SqlVisitorRequestStore
from .modules.visitor_access.services import run_expiry_sweeper

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    logger.info(
        "CasaLink API starting",
        extra={"env": settings.app_env, "debug": settings.app_debug},
    )

    sweeper: asyncio.Task | None = None
    if settings.visitor_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            run_expiry_sweeper(
                AsyncSessionLocal,
                SqlVisitorRequestStore,
                settings.visitor_sweep_interval_seconds,
            ),
            name="visitor-expiry-sweeper",
        )

    yield

    logger.info("CasaLink API stopping")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await engine.dispose()
    shutdown_logging()


def error_body(message: str, error: Any) -> dict[str, Any]:
    """The response envelope for a failed request."""
    return {"success": False, "message": message, "error": error, "data": None}


app = FastAPI(
    title=settings.api_title,
    description="Property topology and visitor access for managed properties",
    version=settings.api_version,
    docs_url=f"{settings.api_prefix}/docs" if settings.app_debug else None,
    redoc_url=None,
    openapi_url=f"{settings.api_prefix}/openapi.json" if settings.app_debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=bool(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-transaction-id"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(CasaLinkException)
async def casalink_exception_handler(request: Request, exc: CasaLinkException):
    if exc.status_code >= 500:
        logger.error(exc.message, extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.message, exc.details or exc.message)),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(error_body("Request validation failed", exc.errors())),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    detail = str(exc) if settings.app_debug else "Internal server error"
    return JSONResponse(status_code=500, content=error_body("Internal server error", detail))


@app.get(f"{settings.api_prefix}/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "version": settings.api_version, "env": settings.app_env}


for module_router in (tenants_router, topology_router, visitors_router, staff_router):
    app.include_router(module_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "casalink_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_debug,
        log_config=None,
    )
