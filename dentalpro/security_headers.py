"""
Response hardening for the API.

Responses are JSON or inline PDFs. The dashboard may embed the PDFs in an
iframe, so framing is allowed for the configured frontend origins only.
Billing and document responses carry patient and payment data and are
never cached.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import FRONTEND_URL

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
FRONTEND_ORIGINS = os.getenv("FRONTEND_ORIGINS", FRONTEND_URL)

NO_STORE_PREFIXES = ("/billing", "/documents", "/images")


def get_csp_policy(frontend_origins: str = FRONTEND_ORIGINS) -> str:
    ancestors = ["'self'"] + [o.strip() for o in frontend_origins.split(",") if o.strip()]
    return "; ".join(
        [
            "default-src 'none'",
            f"frame-ancestors {' '.join(ancestors)}",
            "base-uri 'none'",
            "form-action 'none'",
        ]
    )


def build_static_headers() -> dict[str, str]:
    """Headers that are identical on every response"""
    headers = {
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": get_csp_policy(),
        "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
        "Cross-Origin-Resource-Policy": "same-site",
    }
    if IS_PRODUCTION:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers to every response outside `exclude_paths`"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.static_headers = build_static_headers()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if self.exclude_paths and path.startswith(self.exclude_paths):
            return response

        for name, value in self.static_headers.items():
            response.headers.setdefault(name, value)

        if path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"

        return response
