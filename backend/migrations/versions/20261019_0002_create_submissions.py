from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "submissions",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), primary_key=True, nullable=False),
        sa.Column("participant_id", sa.BigInteger(), sa.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quest_id", sa.String(length=32), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        # a double submit gets a 409 from PostgREST instead of a second row
        sa.UniqueConstraint("participant_id", "quest_id", "task_id", name="uq_submission_one_per_task"),
    )
    op.create_index("ix_submissions_participant_id", "submissions", ["participant_id"])

def downgrade() -> None:
    op.drop_index("ix_submissions_participant_id", table_name="submissions")
    op.drop_table("submissions")
