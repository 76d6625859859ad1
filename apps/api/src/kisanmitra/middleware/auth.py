"""
Bearer token check for /api/* routes.

Health, status and the OpenAPI docs stay public. With no API_TOKEN
configured every request passes (local development).
"""

import hmac
import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class APITokenMiddleware(BaseHTTPMiddleware):
    """Rejects /api/* requests without `Authorization: Bearer <API_TOKEN>`."""

    PUBLIC_PATHS = frozenset(["/health", "/api/status", "/docs", "/openapi.json", "/redoc"])
    PROTECTED_PREFIX = "/api/"

    def __init__(self, app: ASGIApp, api_token: str | None = None):
        super().__init__(app)
        self.api_token = api_token

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        # CORS preflight carries no credentials
        if not self.api_token or request.method == "OPTIONS" or not self._is_protected(path):
            return await call_next(request)

        error = self._check(request.headers.get("Authorization"))
        if error:
            logger.warning("Rejected %s %s: %s", request.method, path, error)
            return JSONResponse(status_code=401, content={"error": error})

        return await call_next(request)

    def _check(self, header: str | None) -> str | None:
        """Error message for a bad header, None when the token matches."""
        if not header:
            return "Missing Authorization header"
        scheme, _, token = header.partition(" ")
        if scheme != "Bearer":
            return "Invalid Authorization format. Use: Bearer <token>"
        if not hmac.compare_digest(token.encode(), self.api_token.encode()):
            return "Invalid API token"
        return None

    def _is_protected(self, path: str) -> bool:
        return path not in self.PUBLIC_PATHS and path.startswith(self.PROTECTED_PREFIX)
