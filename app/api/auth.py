from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.domain.identity import Identity
from app.models.schemas import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from app.services import user_service
from app.services.auth_dependencies import get_current_identity

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> AuthResponse:
    return user_service.register(db, payload)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    return user_service.login(db, payload.username, payload.password)


@router.post("/refresh", response_model=AuthResponse)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)) -> AuthResponse:
    return user_service.refresh(db, payload.refresh_token)


@router.post("/logout")
def logout() -> dict[str, str]:
    # Tokens are stateless; the client discards them.
    return {"status": "ok"}


@router.get("/me")
def me(identity: Identity = Depends(get_current_identity)) -> dict[str, object]:
    return {"id": identity.id, "username": identity.username}
