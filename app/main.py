"""
FastAPI application entry point.

Registers middleware (in order), routes, exception handlers,
and loads the demo transaction history on startup.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import is_production, get_cors_origins
from app.middleware import (
    SecurityHeadersMiddleware,
    RequestIDMiddleware,
    StructuredLoggingMiddleware,
)
from app.routes.checkout import router as checkout_router
from app.routes.terminals import router as terminals_router
from app.routes.transactions import router as transactions_router
from seed_data import load_seed_data

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    docs_url = None if is_production() else "/docs"
    redoc_url = None if is_production() else "/redoc"

    application = FastAPI(
        title="Checkout Terminal Service",
        description="Card-present checkout: payment breakdowns, transaction flows and post-sale operations.",
        version="1.0.0",
        docs_url=docs_url,
        redoc_url=redoc_url,
    )

    # ── Middleware stack (order matters: last added runs first) ─────────────
    application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(StructuredLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID"],
    )

    # ── Routes ──────────────────────────────────────────────────────────────
    application.include_router(checkout_router)
    application.include_router(terminals_router)
    application.include_router(transactions_router)

    # ── Exception handlers ───────────────────────────────────────────────────
    @application.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Never leak stack traces to clients."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
        )

    # ── Startup ──────────────────────────────────────────────────────────────
    @application.on_event("startup")
    async def on_startup():
        load_seed_data()

    return application


app = create_app()
