from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from app.config import get_settings
from app.exceptions import UnauthenticatedError

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    settings = get_settings()
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def _create_token(user_id: int, username: str, token_type: str, lifetime: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, username: str) -> str:
    settings = get_settings()
    return _create_token(user_id, username, ACCESS_TOKEN, timedelta(minutes=settings.jwt_exp_minutes))


def create_refresh_token(user_id: int, username: str) -> str:
    settings = get_settings()
    return _create_token(user_id, username, REFRESH_TOKEN, timedelta(minutes=settings.jwt_refresh_exp_minutes))


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> dict[str, Any]:
    """Validate signature, expiry and token type; return the claims.

    Raises UnauthenticatedError for anything that is not a usable token.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthenticatedError("Invalid token") from exc

    if payload.get("type") != expected_type:
        raise UnauthenticatedError("Invalid token")
    return payload


def user_id_from_claims(payload: dict[str, Any]) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthenticatedError("Invalid token") from exc
