"""Who may see, change and enumerate a snippet.

These are pure decisions over a snippet's ``visibility`` and ``author_id`` and
the viewer's identity. Nothing here touches the database.
"""

from __future__ import annotations

import enum
from typing import Protocol

from app.domain.identity import Identity


class Visibility(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    UNLISTED = "UNLISTED"

    @classmethod
    def parse(cls, value: str | None) -> "Visibility | None":
        if value is None or not value.strip():
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            allowed = ", ".join(v.value for v in cls)
            raise ValueError(f"Invalid visibility '{value}'. Allowed: {allowed}") from None


class GuardedSnippet(Protocol):
    visibility: Visibility
    author_id: int


def is_owner(snippet: GuardedSnippet, viewer: Identity | None) -> bool:
    return viewer is not None and viewer.id == snippet.author_id


def can_read(snippet: GuardedSnippet, viewer: Identity | None) -> bool:
    visibility = Visibility(snippet.visibility)
    if visibility is Visibility.PUBLIC:
        return True
    if visibility is Visibility.UNLISTED:
        # Readable by anyone holding the id; hidden from enumerations only.
        return True
    if visibility is Visibility.PRIVATE:
        return is_owner(snippet, viewer)
    raise ValueError(f"Unhandled visibility: {visibility!r}")


def can_write(snippet: GuardedSnippet, viewer: Identity | None) -> bool:
    return is_owner(snippet, viewer)


def can_enumerate(snippet: GuardedSnippet) -> bool:
    visibility = Visibility(snippet.visibility)
    if visibility is Visibility.PUBLIC:
        return True
    if visibility is Visibility.UNLISTED or visibility is Visibility.PRIVATE:
        return False
    raise ValueError(f"Unhandled visibility: {visibility!r}")
