"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pactnexus.config import Settings
from pactnexus.middleware.error_handler import setup_error_handlers
from pactnexus.middleware.logging import setup_logging
from pactnexus.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Logging, error handlers, request context and CORS.

    Starlette runs middleware in reverse-add order, so CORS (added last) wraps
    every response, including errors.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
