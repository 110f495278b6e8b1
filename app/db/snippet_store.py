"""Snippet persistence.

Explicit query builders over the ``snippets`` table. Every listing goes
through :func:`query` with a :class:`SnippetQuery`; the handful of by-id
lookups the lifecycle needs have their own functions so that visibility and
ownership constraints live in the SQL, not in Python after the fetch.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, case, func, or_, select, update
from sqlalchemy.orm import Session

from app.db.models import Snippet
from app.domain.visibility import Visibility
from app.exceptions import ValidationError

T = TypeVar("T")

SortSpec = tuple[tuple[str, str], ...]

# Upper bound of the INTEGER primary key; larger ids cannot exist.
MAX_ID = 2**31 - 1
MAX_OFFSET = 2**31 - 1

DEFAULT_SORT: SortSpec = (("createdAt", "desc"),)
POPULAR_SORT: SortSpec = (("viewCount", "desc"), ("createdAt", "desc"))

_SORT_COLUMNS = {
    "createdAt": Snippet.created_at,
    "created_at": Snippet.created_at,
    "updatedAt": Snippet.updated_at,
    "updated_at": Snippet.updated_at,
    "title": Snippet.title,
    "language": Snippet.language,
    "viewCount": Snippet.view_count,
    "view_count": Snippet.view_count,
    "id": Snippet.id,
}


@dataclass(frozen=True)
class SnippetQuery:
    author_id: int | None = None
    visibilities: frozenset[Visibility] | None = None
    language: str | None = None
    tag: str | None = None
    text: str | None = None
    sort: SortSpec = DEFAULT_SORT
    page: int = 0
    size: int = 10


@dataclass
class Page(Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_pages = math.ceil(self.total_elements / self.size) if self.size else 0

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0


def sort_spec(sort_by: str | None, sort_dir: str | None) -> SortSpec:
    return ((sort_by or "createdAt", sort_dir or "desc"),)


def _order_by(sort: SortSpec) -> list[Any]:
    clauses: list[Any] = []
    for name, direction in sort:
        column = _SORT_COLUMNS.get(name)
        if column is None:
            allowed = ", ".join(k for k in _SORT_COLUMNS if "_" not in k)
            raise ValidationError(f"Cannot sort by '{name}'. Allowed: {allowed}", field="sortBy")
        normalized = (direction or "").strip().lower()
        if normalized == "asc":
            clauses.append(column.asc())
        elif normalized == "desc":
            clauses.append(column.desc())
        else:
            raise ValidationError(f"Invalid sort direction '{direction}'. Use 'asc' or 'desc'", field="sortDir")
    clauses.append(Snippet.id.desc())
    return clauses


def _filters(q: SnippetQuery) -> list[ColumnElement[bool]]:
    filters: list[ColumnElement[bool]] = []
    if q.author_id is not None:
        filters.append(Snippet.author_id == q.author_id)
    if q.visibilities is not None:
        filters.append(Snippet.visibility.in_(sorted(q.visibilities, key=lambda v: v.value)))
    if q.language:
        filters.append(Snippet.language == q.language)
    if q.tag:
        filters.append(func.lower(Snippet.tags).contains(q.tag.lower(), autoescape=True))
    if q.text:
        term = q.text.lower()
        filters.append(
            or_(
                func.lower(Snippet.title).contains(term, autoescape=True),
                func.lower(Snippet.description).contains(term, autoescape=True),
                func.lower(Snippet.content).contains(term, autoescape=True),
                func.lower(Snippet.tags).contains(term, autoescape=True),
            )
        )
    return filters


def query(db: Session, q: SnippetQuery) -> Page[Snippet]:
    if q.page < 0:
        raise ValidationError("Page index must not be less than zero", field="page")
    if q.size < 1:
        raise ValidationError("Page size must not be less than one", field="size")
    if q.page * q.size > MAX_OFFSET:
        raise ValidationError(f"Page index is too large for page size {q.size}", field="page")

    order_by = _order_by(q.sort)
    filters = _filters(q)

    total = db.execute(select(func.count(Snippet.id)).where(*filters)).scalar_one()
    rows = (
        db.execute(select(Snippet).where(*filters).order_by(*order_by).offset(q.page * q.size).limit(q.size))
        .scalars()
        .all()
    )
    return Page(content=list(rows), page=q.page, size=q.size, total_elements=int(total))


def _valid_id(snippet_id: int) -> bool:
    return 1 <= snippet_id <= MAX_ID


def get_by_id(db: Session, snippet_id: int) -> Snippet | None:
    if not _valid_id(snippet_id):
        return None
    return db.execute(select(Snippet).where(Snippet.id == snippet_id)).scalar_one_or_none()


def get_public_or_unlisted_by_id(db: Session, snippet_id: int) -> Snippet | None:
    if not _valid_id(snippet_id):
        return None
    stmt = select(Snippet).where(
        Snippet.id == snippet_id,
        Snippet.visibility.in_([Visibility.PUBLIC, Visibility.UNLISTED]),
    )
    return db.execute(stmt).scalar_one_or_none()


def get_by_id_and_author(db: Session, snippet_id: int, author_id: int) -> Snippet | None:
    if not _valid_id(snippet_id):
        return None
    stmt = select(Snippet).where(Snippet.id == snippet_id, Snippet.author_id == author_id)
    return db.execute(stmt).scalar_one_or_none()


def save(db: Session, snippet: Snippet) -> Snippet:
    db.add(snippet)
    db.commit()
    db.refresh(snippet)
    return snippet


def delete(db: Session, snippet: Snippet) -> None:
    db.delete(snippet)
    db.commit()


def increment_view_atomic(db: Session, snippet_id: int) -> bool:
    """Single ``view_count = view_count + 1`` statement; never read-modify-write."""
    if not _valid_id(snippet_id):
        return False
    stmt = (
        update(Snippet)
        .where(Snippet.id == snippet_id)
        .values(view_count=Snippet.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount == 1


def distinct_public_languages(db: Session) -> list[str]:
    stmt = (
        select(Snippet.language)
        .where(Snippet.visibility == Visibility.PUBLIC)
        .distinct()
        .order_by(Snippet.language)
    )
    return list(db.execute(stmt).scalars().all())


def public_tag_strings(db: Session) -> list[str]:
    stmt = (
        select(Snippet.tags)
        .where(Snippet.visibility == Visibility.PUBLIC, Snippet.tags.is_not(None), Snippet.tags != "")
        .distinct()
    )
    return list(db.execute(stmt).scalars().all())


def distinct_languages_by_author(db: Session, author_id: int) -> list[str]:
    stmt = select(Snippet.language).where(Snippet.author_id == author_id).distinct().order_by(Snippet.language)
    return list(db.execute(stmt).scalars().all())


@dataclass(frozen=True)
class AuthorStatistics:
    total_snippets: int
    public_snippets: int
    private_snippets: int
    unlisted_snippets: int
    total_views: int


def statistics_by_author(db: Session, author_id: int) -> AuthorStatistics:
    def _count(visibility: Visibility) -> Any:
        return func.coalesce(func.sum(case((Snippet.visibility == visibility, 1), else_=0)), 0)

    stmt = select(
        func.count(Snippet.id),
        _count(Visibility.PUBLIC),
        _count(Visibility.PRIVATE),
        _count(Visibility.UNLISTED),
        func.coalesce(func.sum(Snippet.view_count), 0),
    ).where(Snippet.author_id == author_id)
    total, public, private, unlisted, views = db.execute(stmt).one()
    return AuthorStatistics(
        total_snippets=int(total or 0),
        public_snippets=int(public or 0),
        private_snippets=int(private or 0),
        unlisted_snippets=int(unlisted or 0),
        total_views=int(views or 0),
    )

