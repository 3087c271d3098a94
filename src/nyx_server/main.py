"""Main entry point for the Nyx server."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from nyx_server import __version__
from nyx_server.api.v1 import (
    auth_router,
    chats_router,
    contacts_router,
    realtime_router,
    users_router,
)
from nyx_server.core.errors import NyxError, StoreError
from nyx_server.core.settings import settings
from nyx_server.db.session import SessionLocal, create_tables
from nyx_server.realtime.hub import MessagingHub

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Real-time direct messaging API",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(chats_router, prefix="/api/v1")
app.include_router(contacts_router, prefix="/api/v1")
app.include_router(realtime_router)


@app.exception_handler(NyxError)
async def handle_nyx_error(_request: Request, exc: NyxError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(SQLAlchemyError)
async def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    error = StoreError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Request validation failed",
            "code": "validation_error",
            "errors": jsonable_encoder(
                [
                    {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ]
            ),
        },
    )


@app.on_event("startup")
async def on_startup() -> None:
    logging.getLogger().setLevel(settings.log_level.upper())
    if settings.auto_create_tables:
        create_tables()
    if getattr(app.state, "hub", None) is None:
        app.state.hub = MessagingHub(SessionLocal)
    logger.info("%s %s started", settings.app_name, __version__)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    hub: MessagingHub | None = getattr(app.state, "hub", None)
    if hub is not None:
        logger.info("Shutting down with %d live connections", hub.connection_count)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok", "service": "nyx-server"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "description": "Real-time direct messaging API",
        "websocket": "/ws",
        "docs": "/docs",
    }


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run("nyx_server.main:app", host="0.0.0.0", port=8000, reload=settings.debug)


if __name__ == "__main__":
    run()
