from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, passed explicitly into every snippet operation."""

    id: int
    username: str
    active: bool = True
