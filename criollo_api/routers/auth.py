"""
Authentication router.
Handles login, token rotation, logout and staff account administration.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import AuthService, user_info, user_to_output
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import current_user_context, require_admin, user_id_from
from criollo_shared.security.rate_limit import LOGIN_LIMIT, TOKEN_LIMIT, limiter
from criollo_shared.utils.admin_schemas import UserOutput, UserStatusUpdate
from criollo_shared.utils.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageOutput,
    RefreshTokenRequest,
    RegisterUserRequest,
    ResetPasswordRequest,
    UserInfo,
)

router = APIRouter(prefix="/api/Auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """
    Authenticate with username (or email) and password.

    Returns an access token, a refresh token and the user profile.
    Rate limited per client IP.
    """
    return AuthService(db).login(body.username, body.password)


@router.post("/refresh", response_model=LoginResponse)
@limiter.limit(TOKEN_LIMIT)
def refresh(request: Request, body: RefreshTokenRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Rotate the refresh token; the presented one stops working."""
    return AuthService(db).refresh(body.refresh_token)


@router.post("/logout", response_model=MessageOutput)
def logout(db: Session = Depends(get_db), ctx: dict = Depends(current_user_context)) -> MessageOutput:
    AuthService(db).logout(user_id_from(ctx))
    return MessageOutput(message="Sesión cerrada")


@router.get("/me", response_model=UserInfo)
def me(db: Session = Depends(get_db), ctx: dict = Depends(current_user_context)) -> UserInfo:
    return user_info(AuthService(db).get_user(user_id_from(ctx)))


@router.post("/register", response_model=UserOutput, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterUserRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
    email_service: EmailService = Depends(get_email_service),
) -> UserOutput:
    """Create a staff account. The user must change the password on first login."""
    user, password = AuthService(db).register(body, created_by=user_id_from(ctx))
    email_service.queue(background_tasks, templates.welcome_user(user, password))
    return user_to_output(user)


@router.post("/change-password", response_model=MessageOutput)
def change_password(
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(current_user_context),
) -> MessageOutput:
    AuthService(db).change_password(user_id_from(ctx), body.current_password, body.new_password)
    return MessageOutput(message="Contraseña actualizada")


@router.get("/users", response_model=list[UserOutput])
def list_users(db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> list[UserOutput]:
    return [user_to_output(u) for u in AuthService(db).list_users()]


@router.get("/{user_id}", response_model=UserOutput)
def get_user(user_id: int, db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> UserOutput:
    return user_to_output(AuthService(db).get_user(user_id))


@router.post("/{user_id}/reset-password", response_model=MessageOutput)
def reset_password(
    user_id: int,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> MessageOutput:
    AuthService(db).reset_password(user_id, body.new_password, admin_id=user_id_from(ctx))
    return MessageOutput(message="Contraseña restablecida")


@router.put("/{user_id}/estado", response_model=UserOutput)
def set_user_status(
    user_id: int,
    body: UserStatusUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> UserOutput:
    """Activate or deactivate an account. Deactivation revokes its refresh token."""
    return user_to_output(AuthService(db).set_active(user_id, body.is_active, admin_id=user_id_from(ctx)))
