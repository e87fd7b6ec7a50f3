"""
Per-IP throttling of the credential endpoints (login and token refresh),
built on slowapi. ``RATE_LIMIT_ENABLED=false`` turns it off.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from criollo_shared.config.logging import auth_logger
from criollo_shared.config.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

LOGIN_LIMIT = f"{settings.login_rate_limit}/minute"
TOKEN_LIMIT = "10/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    auth_logger.warning(
        "Too many credential attempts",
        path=request.url.path,
        client_ip=get_remote_address(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={"detail": "Demasiados intentos. Espere un minuto e intente de nuevo.", "code": "RateLimited"},
        headers={"Retry-After": "60"},
    )
