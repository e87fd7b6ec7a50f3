"""
HTTP middleware stack: request IDs, CORS, JSON-only bodies and response
hardening headers.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from criollo_shared.config.settings import settings
from criollo_shared.infrastructure.correlation import REQUEST_ID_HEADER, CorrelationIdMiddleware

# Front-end dev servers (POS terminal and back office)
DEV_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)

_HARDENING_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), geolocation=(), microphone=()",
}

_DOCS_PREFIXES = ("/docs", "/redoc", "/openapi.json")


def cors_origins() -> list[str]:
    """``ALLOWED_ORIGINS`` (comma separated) when set, the dev servers otherwise."""
    configured = [origin.strip() for origin in settings.allowed_origins.split(",")]
    return [origin for origin in configured if origin] or list(DEV_ORIGINS)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(_HARDENING_HEADERS)
        if not request.url.path.startswith(_DOCS_PREFIXES):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class JsonBodyMiddleware(BaseHTTPMiddleware):
    """Reject write requests whose declared body is not JSON (415)."""

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type")
        if (
            request.method in ("POST", "PUT", "PATCH")
            and content_type
            and not content_type.startswith("application/json")
        ):
            return JSONResponse(
                status_code=415,
                content={
                    "detail": "Tipo de contenido no soportado. Use application/json",
                    "code": "UnsupportedMediaType",
                },
            )
        return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    """
    Install the middleware stack.

    Starlette runs the last registered middleware first, so the request ID is
    bound before CORS and the body check run.
    """
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(JsonBodyMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Accept-Language", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=0 if settings.environment == "development" else 600,
    )
    app.add_middleware(CorrelationIdMiddleware)
