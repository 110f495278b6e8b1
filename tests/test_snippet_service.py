import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from app.db.models import Snippet
from app.domain.visibility import Visibility
from app.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
from app.models.schemas import CreateSnippetRequest, UpdateSnippetRequest
from app.services import snippet_service


def _views(db, snippet_id: int) -> int:
    db.expire_all()
    return db.execute(select(Snippet.view_count).where(Snippet.id == snippet_id)).scalar_one()


def test_create_defaults_to_public_with_zero_views(db, make_user) -> None:
    author = make_user("author")
    created = snippet_service.create_snippet(
        db,
        author.to_identity(),
        CreateSnippetRequest(title="Hello", content="print(1)", language="python", tags=["b", "a", "b"]),
    )
    assert created.visibility is Visibility.PUBLIC
    assert created.view_count == 0
    assert created.author_id == author.id
    assert created.author_username == "author"
    assert created.tags == ["a", "b"]


def test_create_requires_identity(db) -> None:
    with pytest.raises(UnauthenticatedError):
        snippet_service.create_snippet(db, None, CreateSnippetRequest(title="t", content="c", language="go"))


def test_private_snippet_read_paths(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    other = make_user("other")
    snippet = make_snippet(owner, visibility=Visibility.PRIVATE)

    with pytest.raises(ForbiddenError):
        snippet_service.get_snippet(db, snippet.id, other.to_identity())
    with pytest.raises(ForbiddenError):
        snippet_service.get_snippet(db, snippet.id, None)
    assert _views(db, snippet.id) == 0

    read = snippet_service.get_snippet(db, snippet.id, owner.to_identity())
    assert read.id == snippet.id
    assert _views(db, snippet.id) == 0

    with pytest.raises(NotFoundError) as hidden:
        snippet_service.get_public_snippet(db, snippet.id)
    with pytest.raises(NotFoundError) as missing:
        snippet_service.get_public_snippet(db, 999)
    assert hidden.value.message.replace(str(snippet.id), "X") == missing.value.message.replace("999", "X")


def test_public_snippet_reads_count_non_owner_views(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    other = make_user("other")
    snippet = make_snippet(owner, view_count=5)

    read = snippet_service.get_snippet(db, snippet.id, other.to_identity())
    assert read.view_count == 6

    read = snippet_service.get_snippet(db, snippet.id, owner.to_identity())
    assert read.view_count == 6

    read = snippet_service.get_public_snippet(db, snippet.id)
    assert read.view_count == 7


def test_unlisted_snippet_is_readable_on_public_path(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    snippet = make_snippet(owner, visibility=Visibility.UNLISTED)

    read = snippet_service.get_public_snippet(db, snippet.id)
    assert read.visibility is Visibility.UNLISTED
    assert read.view_count == 1


def test_get_missing_snippet_is_not_found(db, make_user) -> None:
    viewer = make_user("viewer")
    with pytest.raises(NotFoundError):
        snippet_service.get_snippet(db, 12345, viewer.to_identity())


def test_update_by_non_owner_is_not_found(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    other = make_user("other")
    snippet = make_snippet(owner)
    request = UpdateSnippetRequest(title="hijack", content="x", language="python")

    with pytest.raises(NotFoundError):
        snippet_service.update_snippet(db, snippet.id, other.to_identity(), request)
    with pytest.raises(NotFoundError):
        snippet_service.delete_snippet(db, snippet.id, other.to_identity())
    with pytest.raises(NotFoundError):
        snippet_service.update_snippet(db, 999, owner.to_identity(), request)


def test_update_replaces_content_and_keeps_author(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    snippet = make_snippet(owner, title="old", tags=["x"])

    updated = snippet_service.update_snippet(
        db,
        snippet.id,
        owner.to_identity(),
        UpdateSnippetRequest(
            title="new", content="fn main() {}", language="rust", tags="b, a", visibility="private"
        ),
    )
    assert updated.title == "new"
    assert updated.language == "rust"
    assert updated.tags == ["a", "b"]
    assert updated.visibility is Visibility.PRIVATE
    assert updated.author_id == owner.id


def test_author_cannot_be_reassigned(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    other = make_user("other")
    snippet = make_snippet(owner)
    with pytest.raises(ValueError):
        snippet.author_id = other.id


def test_delete_by_owner(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    snippet = make_snippet(owner)
    snippet_id = snippet.id

    snippet_service.delete_snippet(db, snippet_id, owner.to_identity())
    with pytest.raises(NotFoundError):
        snippet_service.get_snippet(db, snippet_id, owner.to_identity())


def test_public_enumerations_exclude_private_and_unlisted(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    public = make_snippet(owner, title="shared python", visibility=Visibility.PUBLIC, tags=["web"], view_count=3)
    make_snippet(owner, title="secret python", visibility=Visibility.PRIVATE, tags=["web"], view_count=50)
    make_snippet(owner, title="hidden python", visibility=Visibility.UNLISTED, tags=["web"], view_count=40)

    pages = [
        snippet_service.list_public_snippets(db),
        snippet_service.search_public_snippets(db, text="python"),
        snippet_service.search_public_snippets(db, tags="web"),
        snippet_service.list_popular(db),
        snippet_service.list_recent(db),
        snippet_service.list_by_language(db, "python"),
        snippet_service.list_user_public_snippets(db, "owner"),
    ]
    for page in pages:
        assert [s.id for s in page.content] == [public.id]
        assert page.total_elements == 1


def test_my_snippets_include_every_visibility(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    other = make_user("other")
    for visibility in Visibility:
        make_snippet(owner, visibility=visibility)
    make_snippet(other)

    page = snippet_service.list_my_snippets(db, owner.to_identity())
    assert page.total_elements == 3
    assert {s.visibility for s in page.content} == set(Visibility)

    private_only = snippet_service.search_my_snippets(db, owner.to_identity(), visibility="private")
    assert [s.visibility for s in private_only.content] == [Visibility.PRIVATE]


def test_search_filters_compose(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    target = make_snippet(owner, title="Quick Sort", language="python", tags=["algorithms"])
    make_snippet(owner, title="Quick Sort", language="go", tags=["algorithms"])
    make_snippet(owner, title="Quick Sort", language="python", tags=["web"])
    make_snippet(owner, title="Merge", language="python", tags=["algorithms"], description="stable sort")

    page = snippet_service.search_public_snippets(db, text="QUICK", language="python", tags="ALGO")
    assert [s.id for s in page.content] == [target.id]

    page = snippet_service.search_public_snippets(db, text="sort")
    assert page.total_elements == 4


def test_text_search_escapes_like_wildcards(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    make_snippet(owner, title="100% coverage")
    make_snippet(owner, title="1000 coverage")

    page = snippet_service.search_public_snippets(db, text="100%")
    assert [s.title for s in page.content] == ["100% coverage"]


def test_popular_orders_by_views_then_recency(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    low = make_snippet(owner, title="low", view_count=1)
    older_high = make_snippet(owner, title="older high", view_count=10)
    newer_high = make_snippet(owner, title="newer high", view_count=10)

    page = snippet_service.list_popular(db)
    assert [s.id for s in page.content] == [newer_high.id, older_high.id, low.id]


def test_default_ordering_is_newest_first(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    first = make_snippet(owner, title="first")
    second = make_snippet(owner, title="second")

    page = snippet_service.list_public_snippets(db)
    assert [s.id for s in page.content] == [second.id, first.id]

    page = snippet_service.list_public_snippets(db, sort_by="title", sort_dir="asc")
    assert [s.title for s in page.content] == ["first", "second"]


def test_pagination_metadata(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    for i in range(5):
        make_snippet(owner, title=f"s{i}")

    page = snippet_service.list_public_snippets(db, page=1, size=2)
    assert len(page.content) == 2
    assert page.total_elements == 5
    assert page.total_pages == 3
    assert not page.first
    assert not page.last
    assert page.has_next and page.has_previous

    last = snippet_service.list_public_snippets(db, page=2, size=2)
    assert len(last.content) == 1
    assert last.last and not last.has_next


def test_invalid_sort_is_rejected_by_store(db) -> None:
    with pytest.raises(ValidationError):
        snippet_service.list_public_snippets(db, sort_by="password_hash")
    with pytest.raises(ValidationError):
        snippet_service.list_public_snippets(db, sort_dir="sideways")
    with pytest.raises(ValidationError):
        snippet_service.list_public_snippets(db, size=10_000)


def test_user_public_snippets_unknown_user(db, make_user) -> None:
    make_user("ghost", active=False)
    with pytest.raises(NotFoundError):
        snippet_service.list_user_public_snippets(db, "ghost")
    with pytest.raises(NotFoundError):
        snippet_service.list_user_public_snippets(db, "nobody")


def test_languages_and_tags_come_from_public_snippets_only(db, make_user, make_snippet) -> None:
    owner = make_user("owner")
    make_snippet(owner, language="python", tags=["web", "api"])
    make_snippet(owner, language="go", tags=["cli", "web"])
    make_snippet(owner, language="haskell", tags=["secret"], visibility=Visibility.PRIVATE)
    make_snippet(owner, language="ocaml", tags=["hidden"], visibility=Visibility.UNLISTED)

    assert snippet_service.available_languages(db) == ["go", "python"]
    assert snippet_service.available_tags(db) == ["api", "cli", "web"]


def test_ids_beyond_the_key_range_are_misses(db, make_user) -> None:
    owner = make_user("owner")
    huge = 2**70

    with pytest.raises(NotFoundError):
        snippet_service.get_public_snippet(db, huge)
    with pytest.raises(NotFoundError):
        snippet_service.get_snippet(db, huge, owner.to_identity())
    with pytest.raises(NotFoundError):
        snippet_service.delete_snippet(db, huge, owner.to_identity())


def test_page_offset_overflow_is_a_validation_error(db) -> None:
    with pytest.raises(ValidationError) as excinfo:
        snippet_service.list_public_snippets(db, page=2**62, size=10)
    assert excinfo.value.field == "page"


def test_list_tags_must_not_contain_the_separator() -> None:
    with pytest.raises(PydanticValidationError):
        CreateSnippetRequest(title="t", content="c", language="go", tags=["a,b", "c"])

    assert CreateSnippetRequest(title="t", content="c", language="go", tags="a,b, c").tags == ["a", "b", "c"]
    assert CreateSnippetRequest(title="t", content="c", language="go", tags=["b", "a"]).tags == ["a", "b"]
