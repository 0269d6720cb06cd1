"""voting config and vote log

Revision ID: 0001_voting_core
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_voting_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "voting_config",
        sa.Column("show_slug", sa.String(length=200), primary_key=True, nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "vote_log",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("show_slug", sa.String(length=200), nullable=False),
        sa.Column("group_name", sa.String(length=50), nullable=False),
        sa.Column("performer_id", sa.BigInteger(), nullable=False),
        sa.Column("performer_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("vote_rank", sa.SmallInteger(), nullable=False),
        sa.Column("ip_hash", sa.String(length=64), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("voted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("origin_hash", sa.String(length=64), nullable=False, server_default=""),
        sa.UniqueConstraint("show_slug", "group_name", "ip_hash", "vote_rank", name="uq_vote_log_identity_rank"),
        sa.CheckConstraint("vote_rank BETWEEN 1 AND 3", name="ck_vote_log_rank"),
    )
    op.create_index("ix_vote_log_show_group", "vote_log", ["show_slug", "group_name"], unique=False)
    op.create_index("ix_vote_log_show_origin", "vote_log", ["show_slug", "origin_hash", "voted_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_vote_log_show_origin", table_name="vote_log")
    op.drop_index("ix_vote_log_show_group", table_name="vote_log")
    op.drop_table("vote_log")
    op.drop_table("voting_config")
