"""
DRS Hub - FastAPI DRS URI resolution service

Resolves GA4GH DOS/DRS URIs (absolute or compact-identifier form) into
file metadata, user credentials and signed access URLs by talking to the
DRS provider that owns the URI and to Bond, ExternalCreds and Sam.

Run locally:
    uvicorn main:app --app-dir drs-hub --port 8080
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clients import SamApi
from errors import DrsHubError
from orchestrator import DrsResolver
from routes.drs import router as drs_router
from routes.gcs import router as gcs_router
from settings import DrsHubConfig, load_config

logger = logging.getLogger("drs-hub")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

VERSION = "1.0.0"

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=63072000",
    "Cache-Control": "no-store",
}


def create_app(
    config: Optional[DrsHubConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the DRS Hub app.

    Args:
        config: Frozen service config; read from the environment at startup when omitted.
        transport: httpx transport for all downstream calls (tests pass a MockTransport).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the shared config and HTTP client on startup, close it on shutdown."""
        cfg = config if config is not None else load_config()
        http = httpx.AsyncClient(
            timeout=cfg.request_timeout_seconds,
            follow_redirects=True,
            transport=transport,
            headers={"User-Agent": f"drs-hub/{VERSION}"},
        )
        app.state.config = cfg
        app.state.resolver = DrsResolver(cfg, http)
        app.state.sam = SamApi(http, cfg.sam_url)
        logger.info("DRS Hub ready. env=%s providers=%d", cfg.env, len(cfg.providers))

        yield

        logger.info("Shutting down DRS Hub")
        await http.aclose()

    app = FastAPI(
        title="DRS Hub",
        description=(
            "Resolves GA4GH DOS/DRS URIs into file metadata, Google service "
            "account credentials and signed access URLs."
        ),
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def attach_config(request: Request, call_next):
        """Expose the shared resolver to route handlers and add security headers."""
        request.state.resolver = app.state.resolver
        request.state.sam = app.state.sam
        response: Response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.exception_handler(DrsHubError)
    async def drs_hub_error(request: Request, exc: DrsHubError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": exc.status_code, "text": exc.message},
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    app.include_router(drs_router)
    app.include_router(gcs_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Service health check."""
        cfg: DrsHubConfig = app.state.config
        return {
            "status": "ok",
            "service": "drs-hub",
            "version": VERSION,
            "env": cfg.env,
            "providers": [provider.name for provider in cfg.providers],
        }

    @app.get("/", tags=["health"])
    async def root():
        return {
            "service": "DRS Hub",
            "version": VERSION,
            "docs": "/docs",
            "endpoints": [
                "POST /api/v4/drs/resolve",
                "POST /api/v4/gcs/getSignedUrl",
                "GET /health",
            ],
        }

    return app


app = create_app()
