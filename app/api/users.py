from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.domain.identity import Identity
from app.models.schemas import (
    PagedResponse,
    SnippetSummaryResponse,
    UpdateProfileRequest,
    UserDashboardResponse,
    UserProfileResponse,
)
from app.services import snippet_service, user_service
from app.services.auth_dependencies import get_current_identity

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile", response_model=UserProfileResponse)
def my_profile(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> UserProfileResponse:
    return user_service.get_profile(db, identity)


@router.put("/profile", response_model=UserProfileResponse)
def update_my_profile(
    payload: UpdateProfileRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> UserProfileResponse:
    return user_service.update_profile(db, identity, payload)


@router.get("/dashboard", response_model=UserDashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> UserDashboardResponse:
    return user_service.get_dashboard(db, identity)


@router.get("/snippets", response_model=PagedResponse[SnippetSummaryResponse])
def my_snippets(
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_dir: str = Query(default="desc", alias="sortDir"),
    visibility: str | None = None,
    language: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> PagedResponse[SnippetSummaryResponse]:
    return snippet_service.search_my_snippets(
        db,
        identity,
        text=search,
        language=language,
        visibility=visibility,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


@router.delete("/snippets/{snippet_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_snippet(
    snippet_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    snippet_service.delete_snippet(db, snippet_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{username}/profile", response_model=UserProfileResponse)
def public_profile(username: str, db: Session = Depends(get_db)) -> UserProfileResponse:
    return user_service.get_public_profile(db, username)


@router.get("/{username}/snippets", response_model=PagedResponse[SnippetSummaryResponse])
def public_snippets_of(
    username: str,
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> PagedResponse[SnippetSummaryResponse]:
    return snippet_service.list_user_public_snippets(db, username, page=page, size=size)
