"""Accounts: registration, credential checks, token refresh and profiles.

This is the identity provider the snippet core consumes; everything it hands
out is an ``Identity`` or a token pair, never a session-bound ORM object.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import snippet_store
from app.db.models import User
from app.domain.identity import Identity
from app.exceptions import ConflictError, NotFoundError, UnauthenticatedError
from app.models.schemas import (
    AuthResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserDashboardResponse,
    UserInfo,
    UserProfileResponse,
    UserStatistics,
)
from app.observability.metrics import get_metrics
from app.services.auth_service import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    user_id_from_claims,
    verify_password,
)

logger = logging.getLogger(__name__)


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, user.username),
        refresh_token=create_refresh_token(user.id, user.username),
        user=UserInfo(id=user.id, username=user.username, email=user.email),
    )


def _profile(user: User) -> UserProfileResponse:
    return UserProfileResponse.model_validate(user)


def _username_taken(db: Session, username: str, exclude_id: int | None = None) -> bool:
    stmt = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt).first() is not None


def _email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt).first() is not None


def get_active_user(db: Session, user_id: int) -> User | None:
    return db.execute(select(User).where(User.id == user_id, User.is_active.is_(True))).scalar_one_or_none()


def _load(db: Session, identity: Identity) -> User:
    user = get_active_user(db, identity.id)
    if user is None:
        raise UnauthenticatedError("User not found or inactive")
    return user


def register(db: Session, request: RegisterRequest) -> AuthResponse:
    if _username_taken(db, request.username):
        raise ConflictError("Username is already taken", field="username")
    if _email_taken(db, request.email):
        raise ConflictError("Email is already registered", field="email")

    user = User(
        username=request.username,
        email=request.email,
        password_hash=hash_password(request.password),
        full_name=request.full_name,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration.
        db.rollback()
        raise ConflictError("Username or email is already registered") from exc
    db.refresh(user)

    logger.info("auth.registered", extra={"user_id": user.id, "username": user.username})
    return _auth_response(user)


def login(db: Session, username_or_email: str, password: str) -> AuthResponse:
    login_name = username_or_email.strip()
    user = db.execute(
        select(User).where(or_(User.username == login_name, User.email == login_name.lower()))
    ).scalar_one_or_none()
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        get_metrics().increment("auth_failures_total")
        logger.warning("auth.login_failed", extra={"login": login_name})
        raise UnauthenticatedError("Invalid username or password")

    logger.info("auth.login", extra={"user_id": user.id})
    return _auth_response(user)


def refresh(db: Session, refresh_token: str) -> AuthResponse:
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        user = get_active_user(db, user_id_from_claims(payload))
    except UnauthenticatedError:
        get_metrics().increment("auth_failures_total")
        raise
    if user is None:
        get_metrics().increment("auth_failures_total")
        raise UnauthenticatedError("User not found or inactive")
    return _auth_response(user)


def get_profile(db: Session, identity: Identity) -> UserProfileResponse:
    return _profile(_load(db, identity))


def get_public_profile(db: Session, username: str) -> UserProfileResponse:
    user = db.execute(
        select(User).where(User.username == username, User.is_active.is_(True))
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError(message=f"User not found with username: {username}", resource="user")
    return _profile(user)


def update_profile(db: Session, identity: Identity, request: UpdateProfileRequest) -> UserProfileResponse:
    user = _load(db, identity)

    if request.username is not None and request.username != user.username:
        if _username_taken(db, request.username, exclude_id=user.id):
            raise ConflictError(f"Username already exists: {request.username}", field="username")
        user.username = request.username

    if request.email is not None and request.email != user.email:
        if _email_taken(db, request.email, exclude_id=user.id):
            raise ConflictError(f"Email already exists: {request.email}", field="email")
        user.email = request.email

    if request.full_name is not None:
        user.full_name = request.full_name
    if request.bio is not None:
        user.bio = request.bio

    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Username or email already exists") from exc
    db.refresh(user)
    logger.info("user.profile_updated", extra={"user_id": user.id})
    return _profile(user)


def get_dashboard(db: Session, identity: Identity) -> UserDashboardResponse:
    user = _load(db, identity)
    stats = snippet_store.statistics_by_author(db, user.id)
    return UserDashboardResponse(
        profile=_profile(user),
        statistics=UserStatistics(
            total_snippets=stats.total_snippets,
            public_snippets=stats.public_snippets,
            private_snippets=stats.private_snippets,
            unlisted_snippets=stats.unlisted_snippets,
            total_views=stats.total_views,
            last_activity=user.updated_at,
        ),
        recent_languages=snippet_store.distinct_languages_by_author(db, user.id),
    )
