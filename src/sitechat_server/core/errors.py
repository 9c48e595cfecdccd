"""
Global Error Handling

This module defines the request-level exception type and the application-wide
exception handlers for the sitechat server.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
- Let each endpoint family keep its own error envelope
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("sitechat.errors")


# ---------------------------------------------------------------------
# Request Errors
# ---------------------------------------------------------------------

class ApiError(Exception):
    """
    Error raised by a route to short-circuit with a structured response.

    The payload is returned verbatim, so the question endpoint can answer
    ``{"error": "..."}`` while the chat-completion endpoint answers with the
    ``{"error": {"message", "type", "code"}}`` envelope its clients expect.
    """

    def __init__(
        self,
        status_code: int,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(str(payload))
        self.status_code = status_code
        self.payload = payload
        self.headers = headers

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(400, {"error": message})

    @classmethod
    def completion_error(
        cls,
        status_code: int,
        message: str,
        error_type: str,
    ) -> "ApiError":
        return cls(
            status_code,
            {"error": {"message": message, "type": error_type, "code": status_code}},
        )


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError with its own status code and payload."""
    logger.info(
        "Rejected request %s %s with %d",
        request.method,
        request.url.path,
        exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.payload,
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Map body validation failures to a 400 with a structured error.

    Malformed requests are rejected before any processing happens; the
    field-level detail is safe to return because it only describes the
    client's own payload.
    """
    logger.info(
        "Malformed request body on %s %s",
        request.method,
        request.url.path,
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_request",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
