"""Snippet lifecycle: create, read, update, delete, list and search.

Every operation takes the caller's identity explicitly. Authorization is
decided by ``app.domain.visibility``; view counting by
``app.services.view_accounting``. Hidden resources surface as NotFoundError
so that callers cannot probe for private snippets:

* public-path read of a private snippet -> NotFound, same as a missing id
* update/delete of someone else's snippet -> NotFound, never Forbidden
* authenticated-path read of a private snippet by a non-owner -> Forbidden
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db import snippet_store
from app.db.models import Snippet, User
from app.db.snippet_store import POPULAR_SORT, Page, SnippetQuery, SortSpec, sort_spec
from app.domain.identity import Identity
from app.domain.tags import join_tags, normalize_tags
from app.domain.visibility import Visibility, can_read
from app.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
from app.models.schemas import (
    CreateSnippetRequest,
    PagedResponse,
    SnippetResponse,
    SnippetSummaryResponse,
    UpdateSnippetRequest,
)
from app.observability.metrics import get_metrics
from app.services.view_accounting import record_view

logger = logging.getLogger(__name__)

PUBLIC_ONLY = frozenset({Visibility.PUBLIC})


def _require(identity: Identity | None) -> Identity:
    if identity is None:
        raise UnauthenticatedError("Authentication required")
    return identity


def _to_summary(snippet: Snippet) -> SnippetSummaryResponse:
    return SnippetSummaryResponse(
        id=snippet.id,
        title=snippet.title,
        description=snippet.description,
        language=snippet.language,
        tags=normalize_tags(snippet.tags),
        visibility=snippet.visibility,
        view_count=snippet.view_count,
        created_at=snippet.created_at,
        updated_at=snippet.updated_at,
        author_username=snippet.author.username,
        author_id=snippet.author_id,
    )


def _to_response(snippet: Snippet) -> SnippetResponse:
    return SnippetResponse(content=snippet.content, **_to_summary(snippet).model_dump())


def _to_page(page: Page[Snippet]) -> PagedResponse[SnippetSummaryResponse]:
    return PagedResponse[SnippetSummaryResponse](
        content=[_to_summary(s) for s in page.content],
        page=page.page,
        size=page.size,
        total_elements=page.total_elements,
        total_pages=page.total_pages,
        first=page.first,
        last=page.last,
        has_next=page.has_next,
        has_previous=page.has_previous,
    )


def _page_size(size: int | None) -> int:
    settings = get_settings()
    size = settings.default_page_size if size is None else size
    if size < 1 or size > settings.max_page_size:
        raise ValidationError(f"Page size must be between 1 and {settings.max_page_size}", field="size")
    return size


def _run(db: Session, q: SnippetQuery) -> PagedResponse[SnippetSummaryResponse]:
    return _to_page(snippet_store.query(db, q))


def _apply(snippet: Snippet, request: CreateSnippetRequest | UpdateSnippetRequest) -> None:
    snippet.title = request.title
    snippet.description = request.description
    snippet.content = request.content
    snippet.language = request.language
    try:
        snippet.tags = join_tags(request.tags)
    except ValueError as exc:
        raise ValidationError(str(exc), field="tags") from exc
    snippet.visibility = request.visibility


# ── Single snippet ──────────────────────────────────────────────────────


def create_snippet(db: Session, identity: Identity | None, request: CreateSnippetRequest) -> SnippetResponse:
    author = _require(identity)
    snippet = Snippet(author_id=author.id, view_count=0)
    _apply(snippet, request)
    snippet_store.save(db, snippet)

    get_metrics().increment("snippets_created_total")
    logger.info(
        "snippet.created",
        extra={"snippet_id": snippet.id, "user_id": author.id, "visibility": snippet.visibility.value},
    )
    return _to_response(snippet)


def get_snippet(db: Session, snippet_id: int, identity: Identity | None) -> SnippetResponse:
    """Authenticated read path; anonymous callers are allowed but gated by visibility."""
    snippet = snippet_store.get_by_id(db, snippet_id)
    if snippet is None:
        raise NotFoundError("snippet", snippet_id)
    if not can_read(snippet, identity):
        raise ForbiddenError("You don't have permission to access this snippet")

    record_view(db, snippet, identity)
    return _to_response(snippet)


def get_public_snippet(db: Session, snippet_id: int) -> SnippetResponse:
    snippet = snippet_store.get_public_or_unlisted_by_id(db, snippet_id)
    if snippet is None:
        raise NotFoundError("snippet", snippet_id)

    record_view(db, snippet, None)
    return _to_response(snippet)


def _owned(db: Session, snippet_id: int, identity: Identity) -> Snippet:
    snippet = snippet_store.get_by_id_and_author(db, snippet_id, identity.id)
    if snippet is None:
        raise NotFoundError("snippet", snippet_id)
    return snippet


def update_snippet(
    db: Session, snippet_id: int, identity: Identity | None, request: UpdateSnippetRequest
) -> SnippetResponse:
    owner = _require(identity)
    snippet = _owned(db, snippet_id, owner)
    _apply(snippet, request)
    snippet_store.save(db, snippet)
    logger.info("snippet.updated", extra={"snippet_id": snippet.id, "user_id": owner.id})
    return _to_response(snippet)


def delete_snippet(db: Session, snippet_id: int, identity: Identity | None) -> None:
    owner = _require(identity)
    snippet = _owned(db, snippet_id, owner)
    snippet_store.delete(db, snippet)
    logger.info("snippet.deleted", extra={"snippet_id": snippet_id, "user_id": owner.id})


# ── Owner listings ──────────────────────────────────────────────────────


def list_my_snippets(
    db: Session,
    identity: Identity | None,
    page: int = 0,
    size: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> PagedResponse[SnippetSummaryResponse]:
    owner = _require(identity)
    q = SnippetQuery(author_id=owner.id, sort=sort_spec(sort_by, sort_dir), page=page, size=_page_size(size))
    return _run(db, q)


def search_my_snippets(
    db: Session,
    identity: Identity | None,
    text: str | None = None,
    language: str | None = None,
    tags: str | None = None,
    visibility: str | None = None,
    page: int = 0,
    size: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> PagedResponse[SnippetSummaryResponse]:
    owner = _require(identity)
    try:
        wanted = Visibility.parse(visibility)
    except ValueError as exc:
        raise ValidationError(str(exc), field="visibility") from exc

    q = SnippetQuery(
        author_id=owner.id,
        visibilities=frozenset({wanted}) if wanted is not None else None,
        language=_clean(language),
        tag=_clean(tags),
        text=_clean(text),
        sort=sort_spec(sort_by, sort_dir),
        page=page,
        size=_page_size(size),
    )
    return _run(db, q)


# ── Public enumerations (PUBLIC only) ───────────────────────────────────


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _public(
    db: Session,
    page: int,
    size: int | None,
    sort: SortSpec,
    author_id: int | None = None,
    language: str | None = None,
    tag: str | None = None,
    text: str | None = None,
) -> PagedResponse[SnippetSummaryResponse]:
    q = SnippetQuery(
        author_id=author_id,
        visibilities=PUBLIC_ONLY,
        language=_clean(language),
        tag=_clean(tag),
        text=_clean(text),
        sort=sort,
        page=page,
        size=_page_size(size),
    )
    return _run(db, q)


def list_public_snippets(
    db: Session, page: int = 0, size: int | None = None, sort_by: str | None = None, sort_dir: str | None = None
) -> PagedResponse[SnippetSummaryResponse]:
    return _public(db, page, size, sort_spec(sort_by, sort_dir))


def search_public_snippets(
    db: Session,
    text: str | None = None,
    language: str | None = None,
    tags: str | None = None,
    page: int = 0,
    size: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> PagedResponse[SnippetSummaryResponse]:
    return _public(db, page, size, sort_spec(sort_by, sort_dir), language=language, tag=tags, text=text)


def list_by_language(
    db: Session, language: str, page: int = 0, size: int | None = None
) -> PagedResponse[SnippetSummaryResponse]:
    if not _clean(language):
        raise ValidationError("Language is required", field="language")
    return _public(db, page, size, sort_spec(None, None), language=language)


def list_popular(db: Session, page: int = 0, size: int | None = None) -> PagedResponse[SnippetSummaryResponse]:
    return _public(db, page, size, POPULAR_SORT)


def list_recent(db: Session, page: int = 0, size: int | None = None) -> PagedResponse[SnippetSummaryResponse]:
    return _public(db, page, size, sort_spec(None, None))


def list_user_public_snippets(
    db: Session,
    username: str,
    page: int = 0,
    size: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> PagedResponse[SnippetSummaryResponse]:
    user = db.execute(
        select(User).where(User.username == username, User.is_active.is_(True))
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError(message=f"User not found with username: {username}", resource="user")
    return _public(db, page, size, sort_spec(sort_by, sort_dir), author_id=user.id)


def available_languages(db: Session) -> list[str]:
    return snippet_store.distinct_public_languages(db)


def available_tags(db: Session) -> list[str]:
    tags: set[str] = set()
    for raw in snippet_store.public_tag_strings(db):
        tags.update(normalize_tags(raw))
    return sorted(tags)
