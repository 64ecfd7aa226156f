import asyncio
import logging
import time
from contextlib import asynccontextmanager

import anyio
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.api.utils.uploads import sweep_orphaned_uploads
from .error import ClientError, RateLimitError, ServerError

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, **extra) -> dict:
    return {"error": {"code": code, "message": message, **extra}}


async def handle_client_error(request: Request, exc: ClientError):
    error = exc.base_error
    logger.warning(f"Client error: {error.code} {request.method} {request.url.path}")
    extra = {"details": error.details} if error.details else {}
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(error.code, error.message, **extra)
    )


async def handle_rate_limit_error(request: Request, exc: RateLimitError):
    logger.warning(f"Rate limit exceeded: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            exc.base_error.code, exc.base_error.message, retry_after=exc.retry_after
        ),
        headers={
            "Retry-After": str(exc.retry_after),
            "RateLimit-Limit": str(exc.limit),
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": str(exc.retry_after),
        },
    )


async def handle_server_error(request: Request, exc: ServerError):
    logger.error(f"Server error: {exc.base_error.code} {exc.base_error.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(exc.base_error.code, "Internal server error"),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()
    ]
    logger.warning(f"Validation error: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", details=details),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "Internal server error"),
    )


async def _sweep_periodically(staging_dir: str, max_age: int, interval: int):
    while True:
        try:
            await anyio.to_thread.run_sync(
                sweep_orphaned_uploads, staging_dir, max_age, time.time()
            )
        except OSError:
            logger.error("Upload staging sweep failed", exc_info=True)
        await asyncio.sleep(interval)


def create_app(ApplicationConfig) -> FastAPI:
    from src.depends import (
        get_credential_store,
        get_token_service,
        get_upload_validator,
        global_rate_limit,
    )

    # Missing secret or cost factor is fatal here, not on the first request
    get_token_service()
    get_credential_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        validator = app.dependency_overrides.get(get_upload_validator, get_upload_validator)()
        sweeper = asyncio.create_task(
            _sweep_periodically(
                validator.staging_dir,
                ApplicationConfig.UPLOAD_STAGING_MAX_AGE_SECONDS,
                ApplicationConfig.UPLOAD_SWEEP_INTERVAL_SECONDS,
            )
        )
        logger.info("Marketplace API started")
        yield
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        logger.info("Marketplace API shutting down")

    app = FastAPI(
        title="Marketplace API",
        version="0.1.0",
        lifespan=lifespan,
        dependencies=[Depends(global_rate_limit)],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import auth, favorites, profile

    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(profile.router, tags=["Profile"])
    app.include_router(favorites.router, tags=["Favorites"])

    app.mount(
        ApplicationConfig.UPLOAD_URL_PREFIX,
        StaticFiles(directory=ApplicationConfig.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )

    app.add_exception_handler(RateLimitError, handle_rate_limit_error)
    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    return app
