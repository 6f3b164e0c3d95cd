"""create users and testimonials

Revision ID: 3f1c2a9d8b10
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d8b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("image", sa.String(1024), nullable=True),
        sa.Column("origin", sa.String(20), nullable=False, server_default="credentials"),
        sa.Column("oauth_provider", sa.String(50), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "testimonials",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("type", sa.String(10), nullable=False, index=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("legacy_user_ref", sa.String(255), nullable=True),
        *_timestamps(),
    )

    # Feed ordering: newest first with id tie-break
    op.create_index(
        "ix_testimonials_created_at_id", "testimonials", ["created_at", "id"], unique=False
    )
    op.create_check_constraint(
        "ck_testimonials_type", "testimonials", "type IN ('text', 'audio', 'video')"
    )


def downgrade() -> None:
    op.drop_table("testimonials")
    op.drop_table("users")
