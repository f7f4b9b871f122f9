"""
Exception hierarchy for the dispatch error contract, plus the FastAPI handler
that renders it as {"error": {"status": ..., "message": ...}}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AlertServiceError(Exception):
    """Base exception for errors surfaced to API callers."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL",
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class InvalidArgument(AlertServiceError):
    """Required input missing or malformed (400). Nothing was sent or recorded."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400, error_code="INVALID_ARGUMENT")


class Internal(AlertServiceError):
    """Delivery or downstream failure (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500, error_code="INTERNAL")


def register_error_handlers(app: FastAPI) -> None:
    """Register the AlertServiceError handler on the FastAPI app."""

    @app.exception_handler(AlertServiceError)
    async def handle_alert_error(request: Request, exc: AlertServiceError):
        if exc.status_code >= 500:
            logger.error("API Error [%s]: %s", exc.error_code, exc.message)
        else:
            logger.warning("API Error [%s]: %s", exc.error_code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"status": exc.error_code, "message": exc.message}},
        )
