from __future__ import annotations

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.domain.identity import Identity
from app.exceptions import UnauthenticatedError
from app.services.auth_service import decode_token, user_id_from_claims
from app.services.user_service import get_active_user

_bearer = HTTPBearer(auto_error=False)


def _resolve(db: Session, credentials: HTTPAuthorizationCredentials | None) -> Identity | None:
    if credentials is None or not credentials.credentials:
        return None
    payload = decode_token(credentials.credentials)
    user = get_active_user(db, user_id_from_claims(payload))
    if user is None:
        raise UnauthenticatedError("User not found or inactive")
    identity = user.to_identity()
    structlog.contextvars.bind_contextvars(user_id=identity.id)
    return identity


def get_current_identity(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity:
    identity = _resolve(db, credentials)
    if identity is None:
        raise UnauthenticatedError("Not authenticated")
    return identity


def get_optional_identity(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity | None:
    """Like ``get_current_identity`` but lets anonymous requests through.

    A token that is present but invalid is still rejected.
    """
    return _resolve(db, credentials)
