"""CORS, request context, and security headers middleware."""

import time
import uuid
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from voter_intake.core.config import Settings

REQUEST_ID_HEADER = "X-Request-ID"

_DEFAULT_TRUSTED_HEADERS = ["X-Forwarded-For", "X-Real-IP"]


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the client IP from proxy headers or the direct connection.

    For X-Forwarded-For the leftmost address is used. Falls back to
    ``request.client.host``, then "unknown".
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app."""
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": [REQUEST_ID_HEADER],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line emitted while handling a request.

    An incoming ``X-Request-ID`` header is reused; otherwise a new id is
    generated. The id is echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.monotonic()
        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info(
                f"{request.method} {request.url.path} → {response.status_code} "
                f"({elapsed_ms:.0f}ms, client {get_client_ip(request)})"
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
