"""
Authentication Service.

Login, refresh token rotation, logout and user account administration.
Only the SHA-256 of the current refresh token is stored; rotating or
logging out replaces it, which revokes every earlier refresh token.
"""

from __future__ import annotations

import secrets
import string
from typing import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from criollo_api.models import Employee, Role, User
from criollo_shared.config.constants import ErrorMessages
from criollo_shared.config.logging import auth_logger as logger
from criollo_shared.config.logging import mask_email
from criollo_shared.config.settings import settings
from criollo_shared.security.auth import (
    hash_token,
    sign_access_token,
    sign_refresh_token,
    verify_refresh_token,
)
from criollo_shared.security.password import hash_password, needs_rehash, verify_password
from criollo_shared.utils.admin_schemas import UserOutput
from criollo_shared.utils.clock import now_local
from criollo_shared.utils.exceptions import (
    DuplicateEntityError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from criollo_shared.utils.schemas import LoginResponse, RegisterUserRequest, UserInfo

from ..base_service import BaseService


def user_info(user: User) -> UserInfo:
    employee = user.employee
    return UserInfo(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role_name,
        employee_id=employee.id if employee else None,
        employee_name=employee.full_name if employee else None,
        requires_password_change=user.requires_password_change,
        last_login_at=user.last_login_at,
    )


def user_to_output(user: User) -> UserOutput:
    employee = user.employee
    return UserOutput(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role_name,
        is_active=user.is_active,
        requires_password_change=user.requires_password_change,
        last_login_at=user.last_login_at,
        employee_id=employee.id if employee else None,
        employee_name=employee.full_name if employee else None,
        created_at=user.created_at,
    )


def generate_temporary_password(length: int = 12) -> str:
    """Random password that satisfies the strength rules (letters and digits)."""
    alphabet = string.ascii_letters + string.digits
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if any(c.isalpha() for c in candidate) and any(c.isdigit() for c in candidate):
            return candidate


class AuthService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    # =========================================================================
    # Tokens
    # =========================================================================

    def _issue_tokens(self, user: User) -> LoginResponse:
        employee = user.employee
        access_token = sign_access_token(
            user.id,
            user.username,
            user.role_name,
            email=user.email,
            employee_id=employee.id if employee else None,
        )
        refresh_token = sign_refresh_token(user.id)
        user.refresh_token_hash = hash_token(refresh_token)
        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=settings.jwt_access_token_expire_minutes * 60,
            user=user_info(user),
        )

    def login(self, username: str, password: str) -> LoginResponse:
        """Authenticate by username or email."""
        identifier = username.strip().lower()
        user = self._db.scalar(
            select(User).where(
                or_(func.lower(User.username) == identifier, func.lower(User.email) == identifier)
            )
        )

        if user is None:
            logger.warning("LOGIN_FAILED: User not found", username=identifier)
            raise UnauthorizedError(ErrorMessages.INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.warning("LOGIN_FAILED: Invalid password", user_id=user.id)
            raise UnauthorizedError(ErrorMessages.INVALID_CREDENTIALS)
        if not user.is_active:
            logger.warning("LOGIN_FAILED: Inactive user", user_id=user.id)
            raise UnauthorizedError(ErrorMessages.INACTIVE_USER)

        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)

        user.last_login_at = now_local()
        response = self._issue_tokens(user)
        self._commit("iniciar sesión", user_id=user.id)

        logger.info("LOGIN_SUCCESS", user_id=user.id, email=mask_email(user.email), role=user.role_name)
        return response

    def refresh(self, refresh_token: str) -> LoginResponse:
        """Exchange a refresh token for a new pair; the old one stops working."""
        payload = verify_refresh_token(refresh_token)
        user = self._db.get(User, int(payload["sub"]))
        if user is None or not user.is_active:
            raise UnauthorizedError(ErrorMessages.INVALID_TOKEN)
        if user.refresh_token_hash != hash_token(refresh_token):
            logger.warning("Refresh token reuse or revoked token", user_id=user.id)
            raise UnauthorizedError("Token de actualización revocado")

        response = self._issue_tokens(user)
        self._commit("renovar token", user_id=user.id)
        return response

    def logout(self, user_id: int) -> None:
        user = self.get_user(user_id)
        user.refresh_token_hash = None
        self._commit("cerrar sesión", user_id=user_id)
        logger.info("LOGOUT", user_id=user_id)

    # =========================================================================
    # Accounts
    # =========================================================================

    def get_user(self, user_id: int) -> User:
        user = self._db.get(User, user_id)
        if user is None:
            raise NotFoundError("Usuario", user_id)
        return user

    def list_users(self) -> Sequence[User]:
        return self._db.execute(select(User).order_by(User.username)).scalars().unique().all()

    def _get_role(self, name: str) -> Role:
        role = self._db.scalar(select(Role).where(Role.name == name, Role.is_active.is_(True)))
        if role is None:
            raise ValidationError(f"Rol '{name}' no existe", field="role")
        return role

    def register(self, data: RegisterUserRequest, created_by: int | None = None) -> tuple[User, str]:
        """
        Create a staff account.

        Returns:
            (user, plain password) so the caller can send the welcome email.
        """
        email = str(data.email).lower()
        if self._db.scalar(select(User.id).where(func.lower(User.username) == data.username.lower())):
            raise DuplicateEntityError("Usuario", data.username)
        if self._db.scalar(select(User.id).where(User.email == email)):
            raise DuplicateEntityError("Usuario", email)

        role = self._get_role(data.role)
        user = User(
            username=data.username,
            email=email,
            password_hash=hash_password(data.password),
            role_id=role.id,
            role=role,
            requires_password_change=True,
        )
        user.set_created_by(created_by)
        self._db.add(user)
        self._db.flush()

        if data.employee_id is not None:
            employee = self._db.get(Employee, data.employee_id)
            if employee is None:
                raise NotFoundError("Empleado", data.employee_id)
            if employee.user_id is not None:
                raise ValidationError("El empleado ya tiene un usuario asociado", employee_id=employee.id)
            employee.user_id = user.id

        self._commit("registrar usuario", entity="Usuario")
        logger.info("User registered", user_id=user.id, role=role.name, email=mask_email(email))
        return user, data.password

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("La contraseña actual es incorrecta", field="current_password")
        if current_password == new_password:
            raise ValidationError("La nueva contraseña debe ser distinta de la actual", field="new_password")
        user.password_hash = hash_password(new_password)
        user.requires_password_change = False
        user.refresh_token_hash = None
        user.set_updated_by(user_id)
        self._commit("cambiar contraseña", user_id=user_id)
        logger.info("Password changed", user_id=user_id)

    def reset_password(self, user_id: int, new_password: str, admin_id: int | None = None) -> None:
        user = self.get_user(user_id)
        user.password_hash = hash_password(new_password)
        user.requires_password_change = True
        user.refresh_token_hash = None
        user.set_updated_by(admin_id)
        self._commit("restablecer contraseña", user_id=user_id)
        logger.warning("Password reset by administrator", user_id=user_id, admin_id=admin_id)

    def set_active(self, user_id: int, is_active: bool, admin_id: int | None = None) -> User:
        user = self.get_user(user_id)
        if is_active:
            user.restore(admin_id)
        else:
            user.soft_delete(admin_id)
            user.refresh_token_hash = None
        self._commit("cambiar estado de usuario", user_id=user_id)
        return user
