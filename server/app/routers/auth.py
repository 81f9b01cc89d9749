from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, get_optional_user
from app.auth.security import create_access_token, generate_reset_token, hash_password, hash_token, verify_password
from app.core.config import settings
from app.core.db import get_db
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MeResponse,
    ProfileMember,
    ProfileMinistry,
    ProfileOut,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserOut,
)
from app.schemas.common import MessageResponse
from app.services.user_accounts import (
    ensure_roles,
    find_user_by_email,
    normalize_email,
    now_utc,
    validate_password_strength,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent."


def _serialize_user(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        date_of_birth=user.date_of_birth,
        address=user.address,
        emergency_contact=user.emergency_contact,
        is_active=user.is_active,
        roles=user.role_names,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


def _serialize_profile(user: User) -> ProfileOut:
    member = None
    if user.member is not None:
        linked = user.member
        member = ProfileMember(
            id=linked.id,
            first_name=linked.first_name,
            last_name=linked.last_name,
            cell_id=linked.cell_id,
            cell_name=linked.cell.name if linked.cell else None,
            ministries=[
                ProfileMinistry(id=membership.ministry.id, name=membership.ministry.name, role=membership.role)
                for membership in linked.ministry_memberships
                if membership.is_active
            ],
        )
    return ProfileOut(**_serialize_user(user).dict(), member=member)


def _issue_token(user: User) -> str:
    return create_access_token(subject=str(user.id), roles=user.role_names)


def _check_password(password: str) -> None:
    try:
        validate_password_strength(password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> AuthResponse:
    email = normalize_email(payload.email)
    if find_user_by_email(db, email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")
    _check_password(payload.password)

    user = User(
        email=email,
        full_name=payload.name,
        phone=payload.phone,
        hashed_password=hash_password(payload.password),
        is_active=True,
    )
    user.roles = ensure_roles(db, [payload.role])
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("user_registered", extra={"user_id": user.id, "actor": user.email})
    return AuthResponse(user=_serialize_user(user), access_token=_issue_token(user))


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user = find_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.info("login_failed", extra={"actor": normalize_email(payload.email)})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    user.last_login_at = now_utc()
    db.commit()
    db.refresh(user)

    logger.info("user_logged_in", extra={"user_id": user.id, "actor": user.email})
    return AuthResponse(user=_serialize_user(user), access_token=_issue_token(user))


@router.post("/logout", response_model=MessageResponse)
def logout(user: User = Depends(get_current_user)) -> MessageResponse:
    logger.info("user_logged_out", extra={"user_id": user.id, "actor": user.email})
    return MessageResponse(detail="Logged out successfully")


@router.get("/profile", response_model=ProfileOut)
def get_profile(user: User = Depends(get_current_user)) -> ProfileOut:
    return _serialize_profile(user)


@router.put("/profile", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ProfileOut:
    changes = payload.dict(exclude_unset=True)
    if "full_name" in changes and changes["full_name"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="full_name cannot be null")

    db_user = db.get(User, user.id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    for field, value in changes.items():
        setattr(db_user, field, value)
    db.commit()
    db.refresh(db_user)

    logger.info("profile_updated", extra={"user_id": db_user.id, "actor": db_user.email})
    return _serialize_profile(db_user)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageResponse:
    db_user = db.get(User, user.id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not verify_password(payload.current_password, db_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    _check_password(payload.new_password)

    db_user.hashed_password = hash_password(payload.new_password)
    db.commit()
    logger.info("password_changed", extra={"user_id": db_user.id, "actor": db_user.email})
    return MessageResponse(detail="Password changed successfully")


@router.post("/refresh-token", response_model=TokenResponse)
def refresh_token(user: User = Depends(get_current_user)) -> TokenResponse:
    return TokenResponse(access_token=_issue_token(user))


@router.get("/me", response_model=MeResponse)
def me(user: User | None = Depends(get_optional_user)) -> MeResponse:
    if user is None:
        return MeResponse(user=None)
    return MeResponse(user=_serialize_user(user))


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)) -> ForgotPasswordResponse:
    user = find_user_by_email(db, payload.email)
    if user is None or not user.is_active:
        return ForgotPasswordResponse(detail=FORGOT_PASSWORD_MESSAGE)

    raw_token, token_hash = generate_reset_token()
    user.password_reset_token_hash = token_hash
    user.password_reset_expires_at = now_utc() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    db.commit()

    logger.info("password_reset_requested", extra={"user_id": user.id, "actor": user.email})
    if settings.ENVIRONMENT == "local":
        return ForgotPasswordResponse(detail=FORGOT_PASSWORD_MESSAGE, reset_token=raw_token)
    return ForgotPasswordResponse(detail=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = db.query(User).filter(User.password_reset_token_hash == hash_token(payload.token)).first()
    if (
        user is None
        or user.password_reset_expires_at is None
        or user.password_reset_expires_at < now_utc()
    ):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")
    _check_password(payload.password)

    user.hashed_password = hash_password(payload.password)
    user.password_reset_token_hash = None
    user.password_reset_expires_at = None
    db.commit()

    logger.info("password_reset_completed", extra={"user_id": user.id, "actor": user.email})
    return MessageResponse(detail="Password has been reset successfully")
