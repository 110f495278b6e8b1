from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from app.domain.identity import Identity
from app.domain.tags import normalize_tags
from app.domain.visibility import Visibility


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    snippets: Mapped[list["Snippet"]] = relationship(back_populates="author")

    def to_identity(self) -> Identity:
        return Identity(id=self.id, username=self.username, active=self.is_active)


class Snippet(Base):
    __tablename__ = "snippets"
    __table_args__ = (
        Index("idx_snippet_visibility", "visibility"),
        Index("idx_snippet_language", "language"),
        Index("idx_snippet_created_at", "created_at"),
        Index("idx_snippet_title", "title"),
        Index("idx_snippet_tags", "tags"),
        CheckConstraint("view_count >= 0", name="ck_snippets_view_count_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(50), nullable=False)
    # Normalised comma-separated form, see app.domain.tags.
    tags: Mapped[str | None] = mapped_column(String(500), nullable=True)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=Visibility.PUBLIC,
    )
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", name="fk_snippet_author"), index=True, nullable=False)

    author: Mapped["User"] = relationship(back_populates="snippets", lazy="joined")

    @validates("author_id")
    def _keep_author(self, key: str, value: int) -> int:
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise ValueError("Snippet author cannot be changed")
        return value

    @property
    def tag_list(self) -> list[str]:
        return normalize_tags(self.tags)
