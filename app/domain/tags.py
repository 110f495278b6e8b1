from __future__ import annotations

from collections.abc import Iterable

TAG_SEPARATOR = ","
MAX_TAGS_LENGTH = 500


def normalize_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Split, trim, drop empties, de-duplicate and sort.

    Accepts either the persisted comma-separated form or any iterable of tags.
    De-duplication is case-sensitive; the first spelling wins ordering only
    through the final sort.
    """
    if raw is None:
        return []
    parts = raw.split(TAG_SEPARATOR) if isinstance(raw, str) else list(raw)
    cleaned: set[str] = set()
    for part in parts:
        if part is None:
            continue
        tag = str(part).strip()
        if tag:
            cleaned.add(tag)
    return sorted(cleaned)


def join_tags(tags: Iterable[str]) -> str | None:
    normalized = normalize_tags(tags)
    if not normalized:
        return None
    joined = TAG_SEPARATOR.join(normalized)
    if len(joined) > MAX_TAGS_LENGTH:
        raise ValueError(f"Tags must not exceed {MAX_TAGS_LENGTH} characters")
    return joined
