"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-18 09:12:41.208317

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_init'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("bio", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "snippets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=50), nullable=False),
        sa.Column("tags", sa.String(length=500), nullable=True),
        sa.Column("visibility", sa.String(length=20), nullable=False, server_default="PUBLIC"),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], name="fk_snippet_author"),
        sa.CheckConstraint("view_count >= 0", name="ck_snippets_view_count_non_negative"),
    )
    op.create_index("ix_snippets_author_id", "snippets", ["author_id"], unique=False)
    op.create_index("idx_snippet_visibility", "snippets", ["visibility"], unique=False)
    op.create_index("idx_snippet_language", "snippets", ["language"], unique=False)
    op.create_index("idx_snippet_created_at", "snippets", ["created_at"], unique=False)
    op.create_index("idx_snippet_title", "snippets", ["title"], unique=False)
    op.create_index("idx_snippet_tags", "snippets", ["tags"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_snippet_tags", table_name="snippets")
    op.drop_index("idx_snippet_title", table_name="snippets")
    op.drop_index("idx_snippet_created_at", table_name="snippets")
    op.drop_index("idx_snippet_language", table_name="snippets")
    op.drop_index("idx_snippet_visibility", table_name="snippets")
    op.drop_index("ix_snippets_author_id", table_name="snippets")
    op.drop_table("snippets")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
