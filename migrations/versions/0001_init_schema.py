"""init schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "threads",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_threads_created_at", "threads", ["created_at"])

    op.create_table(
        "thread_messages",
        sa.Column("id", sa.BigInteger, sa.Identity(always=False), primary_key=True),
        sa.Column(
            "thread_id",
            sa.String(length=128),
            sa.ForeignKey("threads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("finalized", sa.Boolean, nullable=False, server_default=sa.text("TRUE")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("role IN ('user', 'assistant')", name="ck_thread_messages_role"),
    )
    op.create_index("idx_thread_messages_thread_id", "thread_messages", ["thread_id", "id"])


def downgrade() -> None:
    op.drop_index("idx_thread_messages_thread_id", table_name="thread_messages")
    op.drop_table("thread_messages")

    op.drop_index("idx_threads_created_at", table_name="threads")
    op.drop_table("threads")
