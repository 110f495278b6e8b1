from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from app.db import snippet_store
from app.db.models import Snippet
from app.domain.identity import Identity
from app.domain.visibility import can_read, is_owner
from app.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


def should_count_view(snippet: Snippet, viewer: Identity | None) -> bool:
    """Permitted reads by anyone but the author count as a view."""
    return can_read(snippet, viewer) and not is_owner(snippet, viewer)


def record_view(db: Session, snippet: Snippet, viewer: Identity | None) -> bool:
    """Advance the persisted view counter by one when the read qualifies.

    The increment is a single UPDATE in the database, so concurrent reads of
    the same snippet are all counted. Store errors propagate to the caller.
    Returns whether an increment happened.
    """
    if not should_count_view(snippet, viewer):
        return False

    snippet_id = snippet.id
    incremented = snippet_store.increment_view_atomic(db, snippet_id)
    if incremented:
        get_metrics().increment("snippet_views_total")
        logger.info(
            "snippet.view_recorded",
            snippet_id=snippet_id,
            viewer_id=viewer.id if viewer is not None else None,
        )
    return incremented
