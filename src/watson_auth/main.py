# src/watson_auth/main.py
"""Main entry point for the Watson auth service."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from watson_auth.api.v1 import auth_router
from watson_auth.core.settings import Settings, get_settings
from watson_auth.db.session import create_tables, get_session_factory
from watson_auth.services.chain import close_chain_client, get_chain_client
from watson_auth.services.errors import ChainQueryError
from watson_auth.services.sweeper import ExpiredRecordSweeper

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


def configure_logging(settings: Settings) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


settings = get_settings()
configure_logging(settings)

# Initialize FastAPI app
app = FastAPI(
    title="Watson Auth API",
    description="Sign in with an Ethereum account",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.middleware("http")
async def add_security_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


# Include API routers
app.include_router(auth_router, prefix="/api/v1")


async def _check_chain_id() -> None:
    try:
        reported = await get_chain_client().chain_id()
    except ChainQueryError as exc:
        logger.warning("Could not query chain id from RPC endpoint: %s", exc)
        return
    if reported != settings.siwe_chain_id:
        logger.warning(
            "RPC endpoint reports chain id %s but SIWE_CHAIN_ID is %s",
            reported,
            settings.siwe_chain_id,
        )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.create_tables_on_startup:
        create_tables()
    if settings.verify_chain_on_startup:
        await _check_chain_id()
    sweeper = ExpiredRecordSweeper(
        get_session_factory(),
        settings.sweep_interval_seconds,
        nonce_retention=timedelta(seconds=settings.nonce_retention_seconds),
    )
    await sweeper.start()
    app.state.sweeper = sweeper


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper: ExpiredRecordSweeper | None = getattr(app.state, "sweeper", None)
    if sweeper:
        await sweeper.stop()
    await close_chain_client()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Watson Auth API",
        "version": settings.app_version,
        "description": "Sign in with an Ethereum account",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("watson_auth.main:app", host="0.0.0.0", port=8080, reload=settings.debug)
