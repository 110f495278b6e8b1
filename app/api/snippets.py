from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.domain.identity import Identity
from app.models.schemas import (
    CreateSnippetRequest,
    PagedResponse,
    SnippetResponse,
    SnippetSummaryResponse,
    UpdateSnippetRequest,
)
from app.services import snippet_service
from app.services.auth_dependencies import get_current_identity, get_optional_identity

router = APIRouter(prefix="/api/snippets", tags=["snippets"])

SnippetPage = PagedResponse[SnippetSummaryResponse]

# Shared paging parameters; `sortBy` is validated by the store.
PageParam = Query(default=0, ge=0)
SizeParam = Query(default=None, ge=1)
SortByParam = Query(default="createdAt", alias="sortBy")
SortDirParam = Query(default="desc", alias="sortDir")


@router.post("", response_model=SnippetResponse, status_code=status.HTTP_201_CREATED)
def create_snippet(
    payload: CreateSnippetRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SnippetResponse:
    return snippet_service.create_snippet(db, identity, payload)


@router.get("/public", response_model=SnippetPage)
def public_snippets(
    page: int = PageParam,
    size: int | None = SizeParam,
    sort_by: str = SortByParam,
    sort_dir: str = SortDirParam,
    db: Session = Depends(get_db),
) -> SnippetPage:
    return snippet_service.list_public_snippets(db, page=page, size=size, sort_by=sort_by, sort_dir=sort_dir)


@router.get("/public/{snippet_id:int}", response_model=SnippetResponse)
def public_snippet(snippet_id: int, db: Session = Depends(get_db)) -> SnippetResponse:
    return snippet_service.get_public_snippet(db, snippet_id)


@router.get("/search", response_model=SnippetPage)
def search_public(
    q: str | None = None,
    language: str | None = None,
    tags: str | None = None,
    page: int = PageParam,
    size: int | None = SizeParam,
    sort_by: str = SortByParam,
    sort_dir: str = SortDirParam,
    db: Session = Depends(get_db),
) -> SnippetPage:
    return snippet_service.search_public_snippets(
        db, text=q, language=language, tags=tags, page=page, size=size, sort_by=sort_by, sort_dir=sort_dir
    )


@router.get("/my", response_model=SnippetPage)
def my_snippets(
    page: int = PageParam,
    size: int | None = SizeParam,
    sort_by: str = SortByParam,
    sort_dir: str = SortDirParam,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SnippetPage:
    return snippet_service.list_my_snippets(db, identity, page=page, size=size, sort_by=sort_by, sort_dir=sort_dir)


@router.get("/my/search", response_model=SnippetPage)
def search_mine(
    q: str | None = None,
    language: str | None = None,
    tags: str | None = None,
    visibility: str | None = None,
    page: int = PageParam,
    size: int | None = SizeParam,
    sort_by: str = SortByParam,
    sort_dir: str = SortDirParam,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SnippetPage:
    return snippet_service.search_my_snippets(
        db,
        identity,
        text=q,
        language=language,
        tags=tags,
        visibility=visibility,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


@router.get("/popular", response_model=SnippetPage)
def popular(page: int = PageParam, size: int | None = SizeParam, db: Session = Depends(get_db)) -> SnippetPage:
    return snippet_service.list_popular(db, page=page, size=size)


@router.get("/recent", response_model=SnippetPage)
def recent(page: int = PageParam, size: int | None = SizeParam, db: Session = Depends(get_db)) -> SnippetPage:
    return snippet_service.list_recent(db, page=page, size=size)


@router.get("/language/{language}", response_model=SnippetPage)
def by_language(
    language: str, page: int = PageParam, size: int | None = SizeParam, db: Session = Depends(get_db)
) -> SnippetPage:
    return snippet_service.list_by_language(db, language, page=page, size=size)


@router.get("/languages", response_model=list[str])
def languages(db: Session = Depends(get_db)) -> list[str]:
    return snippet_service.available_languages(db)


@router.get("/tags", response_model=list[str])
def tags(db: Session = Depends(get_db)) -> list[str]:
    return snippet_service.available_tags(db)


@router.get("/user/{username}", response_model=SnippetPage)
def user_public_snippets(
    username: str,
    page: int = PageParam,
    size: int | None = SizeParam,
    sort_by: str = SortByParam,
    sort_dir: str = SortDirParam,
    db: Session = Depends(get_db),
) -> SnippetPage:
    return snippet_service.list_user_public_snippets(
        db, username, page=page, size=size, sort_by=sort_by, sort_dir=sort_dir
    )


@router.get("/{snippet_id:int}", response_model=SnippetResponse)
def get_snippet(
    snippet_id: int,
    db: Session = Depends(get_db),
    identity: Identity | None = Depends(get_optional_identity),
) -> SnippetResponse:
    return snippet_service.get_snippet(db, snippet_id, identity)


@router.put("/{snippet_id:int}", response_model=SnippetResponse)
def update_snippet(
    snippet_id: int,
    payload: UpdateSnippetRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SnippetResponse:
    return snippet_service.update_snippet(db, snippet_id, identity, payload)


@router.delete("/{snippet_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_snippet(
    snippet_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    snippet_service.delete_snippet(db, snippet_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
