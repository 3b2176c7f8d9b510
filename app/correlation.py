# app/correlation.py
"""
Correlation ID middleware for request tracing.

Provides:
- X-Request-Id header handling (accepts client-provided or generates UUID4)
- Request state and context-variable storage for downstream access
- A logging filter that stamps every record with the current request ID
"""
from __future__ import annotations

import logging
import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


REQUEST_ID_HEADER = "X-Request-Id"

# Validation for client-provided request IDs
MAX_REQUEST_ID_LENGTH = 64
# Allow alphanumeric, hyphens, underscores only (safe for logging)
SAFE_REQUEST_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

_current_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def validate_request_id(request_id: Optional[str]) -> Optional[str]:
    """
    Validate a client-provided request ID.

    Returns:
        The request_id if valid, None otherwise.
    """
    if not request_id:
        return None
    if len(request_id) > MAX_REQUEST_ID_LENGTH:
        return None
    if not SAFE_REQUEST_ID_PATTERN.match(request_id):
        return None
    return request_id


def generate_request_id() -> str:
    """Generate a new UUID4 request ID."""
    return str(uuid.uuid4())


def get_request_id(request: Request) -> Optional[str]:
    """Get request ID from request state (if set by middleware)."""
    return getattr(request.state, "request_id", None)


def current_request_id() -> Optional[str]:
    """Request ID of the request being handled in this context, if any."""
    return _current_request_id.get()


@contextmanager
def bind_request_id(request_id: Optional[str]) -> Iterator[None]:
    """Make ``request_id`` the current one for log records emitted in the block."""
    token = _current_request_id.set(request_id)
    try:
        yield
    finally:
        _current_request_id.reset(token)



class RequestIdLogFilter(logging.Filter):
    """Adds ``record.request_id`` ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _current_request_id.get() or "-"
        return True


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that handles X-Request-Id for request correlation.

    - Reads X-Request-Id from incoming request (validates format)
    - Generates UUID4 if not provided or invalid
    - Stores in request.state.request_id and the logging context
    - Adds X-Request-Id to all responses
    """

    async def dispatch(self, request: Request, call_next):
        client_request_id = request.headers.get("x-request-id")
        request_id = validate_request_id(client_request_id) or generate_request_id()

        request.state.request_id = request_id
        with bind_request_id(request_id):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
