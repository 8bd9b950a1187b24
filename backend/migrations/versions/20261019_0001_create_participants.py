from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "participants",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_participants_created_at", "participants", ["created_at"])

def downgrade() -> None:
    op.drop_index("ix_participants_created_at", table_name="participants")
    op.drop_table("participants")
