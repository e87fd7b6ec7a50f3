"""
Staff authentication: HS256 access and refresh tokens (PyJWT) and the
role-gating dependencies used by the routers.
"""

from __future__ import annotations

import hashlib
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any

import jwt
from fastapi import Depends, Header

from criollo_shared.config.constants import ErrorMessages, Roles
from criollo_shared.config.logging import get_logger
from criollo_shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET, settings
from criollo_shared.utils.exceptions import InsufficientRoleError, UnauthorizedError

logger = get_logger(__name__)


def sign_jwt(
    payload: dict[str, Any],
    ttl_seconds: int | None = None,
    token_type: str = "access",
) -> str:
    """Add the registered claims (iss, aud, iat, exp, jti) and sign ``payload``."""
    if ttl_seconds is None:
        if token_type == "refresh":
            ttl_seconds = settings.jwt_refresh_token_expire_days * 24 * 60 * 60
        else:
            ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def sign_access_token(
    user_id: int,
    username: str,
    role: str,
    email: str | None = None,
    employee_id: int | None = None,
) -> str:
    return sign_jwt(
        {
            "sub": str(user_id),
            "username": username,
            "role": role,
            "email": email,
            "employee_id": employee_id,
        }
    )


def sign_refresh_token(user_id: int) -> str:
    """Subject-only token; exchangeable once for a new pair."""
    return sign_jwt({"sub": str(user_id)}, token_type="refresh")


def hash_token(token: str) -> str:
    """SHA-256 digest stored in place of the raw refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_jwt(token: str, expected_type: str = "access") -> dict[str, Any]:
    """Decoded claims, or ``UnauthorizedError`` for a bad, expired or mistyped token."""
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("El token ha expirado")
    except jwt.InvalidTokenError as e:
        # Generic message to the client, actual reason in the log
        logger.warning("JWT validation failed", error=str(e))
        raise UnauthorizedError()

    if payload.get("type") != expected_type:
        raise UnauthorizedError("Tipo de token inválido", expected_type=expected_type)

    try:
        int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise UnauthorizedError("Token inválido: sujeto mal formado")

    if expected_type == "access" and not payload.get("role"):
        raise UnauthorizedError("Token inválido: rol ausente")

    return payload


def verify_refresh_token(token: str) -> dict[str, Any]:
    return verify_jwt(token, expected_type="refresh")


def get_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError(ErrorMessages.MISSING_TOKEN)
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Formato de Authorization inválido. Se esperaba: Bearer <token>")
    return authorization.split(" ", 1)[1].strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """Claims of the caller's access token: sub, username, role, email, employee_id."""
    return verify_jwt(get_bearer_token(authorization))


def require_roles(ctx: dict[str, Any], allowed: Iterable[str]) -> None:
    """
    Verify that the user holds one of the allowed roles.

    Raises:
        InsufficientRoleError: If user lacks required role.
    """
    allowed = set(allowed)
    if ctx.get("role") not in allowed:
        raise InsufficientRoleError(list(allowed), user_id=ctx.get("sub"), role=ctx.get("role"))


def require_any_role(*roles: str | Iterable[str]) -> Callable[..., dict[str, Any]]:
    """
    Dependency factory for role-gated endpoints.

    Usage:
        @router.post("/", dependencies=[Depends(require_any_role(Roles.ADMIN))])
        def create(...): ...

        def update(ctx: dict = Depends(require_any_role(BILLING_ROLES))): ...
    """
    allowed: set[str] = set()
    for role in roles:
        if isinstance(role, str):
            allowed.add(role)
        else:
            allowed.update(role)

    def dependency(ctx: dict[str, Any] = Depends(current_user_context)) -> dict[str, Any]:
        require_roles(ctx, allowed)
        return ctx

    return dependency


def require_admin(ctx: dict[str, Any] = Depends(current_user_context)) -> dict[str, Any]:
    """Dependency that only lets administrators through."""
    require_roles(ctx, [Roles.ADMIN])
    return ctx


def user_id_from(ctx: dict[str, Any]) -> int:
    return int(ctx["sub"])


def employee_id_from(ctx: dict[str, Any]) -> int | None:
    value = ctx.get("employee_id")
    return int(value) if value is not None else None
