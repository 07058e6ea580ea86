"""MovieBooks FastAPI application entry point."""

import logging
import os
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from moviebooks.config import settings
from moviebooks.api import auth, catalog, comments, connections, follows, health, notifications, users

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup: create tables, probe database and image store
    from moviebooks.database import engine, init_db
    from moviebooks.services.integration_probe import probe_all
    from moviebooks.services.uploads import get_image_store

    await init_db()
    app.state.integrations = await probe_all(settings, get_image_store())
    logger.info(f"{settings.app_name} started ({settings.environment}): {app.state.integrations}")
    yield
    # Shutdown: close DB pool
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Connections between movies and the books behind them",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# CORS: the web client's origin plus our own URL
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_origin_url, settings.app_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error envelope ───────────────────────────────────────────────

def _error_response(request: Request, status_code: int, message: str, exc: Exception) -> JSONResponse:
    body = {"message": message, "stack": None}
    if settings.expose_stack:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return _error_response(request, exc.status_code, str(exc.detail), exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = ", ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ())[1:]) or 'request'}: {e.get('msg')}" for e in errors
    ) or "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
    return _error_response(request, 400, message, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} -> 500: {exc}", exc_info=exc)
    return _error_response(request, 500, str(exc) or "Internal Server Error", exc)


# ── Static uploads ───────────────────────────────────────────────
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

# ── Mount routers ────────────────────────────────────────────────
app.include_router(health.router,          prefix="/api", tags=["system"])
app.include_router(auth.router,            prefix="/api", tags=["auth"])
app.include_router(connections.router,     prefix="/api", tags=["connections"])
app.include_router(comments.router,        prefix="/api", tags=["comments"])
app.include_router(follows.router,         prefix="/api", tags=["follows"])
app.include_router(notifications.router,   prefix="/api", tags=["notifications"])
app.include_router(users.router,           prefix="/api", tags=["users"])
app.include_router(catalog.router,         prefix="/api", tags=["catalog"])
