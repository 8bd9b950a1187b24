from __future__ import annotations
from alembic import op
from treasure_hunt.config import settings

# revision identifiers
revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None

# The service authenticates with the project's anon key only, so row level
# security has to let the anon role read both tables and insert into them.
# Nothing grants update or delete on rows.
TABLES = ("participants", "submissions")


def _bucket() -> str:
    return settings.storage_bucket.replace("'", "''")


def upgrade() -> None:
    for table in TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f'CREATE POLICY "anon_select_{table}" ON {table} FOR SELECT TO anon USING (true)')
        op.execute(f'CREATE POLICY "anon_insert_{table}" ON {table} FOR INSERT TO anon WITH CHECK (true)')

    bucket = _bucket()
    op.execute(
        f"INSERT INTO storage.buckets (id, name, public) VALUES ('{bucket}', '{bucket}', true) "
        "ON CONFLICT (id) DO UPDATE SET public = true"
    )
    op.execute(
        'CREATE POLICY "anon_upload_evidence" ON storage.objects FOR INSERT TO anon '
        f"WITH CHECK (bucket_id = '{bucket}')"
    )
    # orphan cleanup after a failed submissions insert
    op.execute(
        'CREATE POLICY "anon_delete_evidence" ON storage.objects FOR DELETE TO anon '
        f"USING (bucket_id = '{bucket}')"
    )


def downgrade() -> None:
    op.execute('DROP POLICY IF EXISTS "anon_delete_evidence" ON storage.objects')
    op.execute('DROP POLICY IF EXISTS "anon_upload_evidence" ON storage.objects')
    for table in reversed(TABLES):
        op.execute(f'DROP POLICY IF EXISTS "anon_insert_{table}" ON {table}')
        op.execute(f'DROP POLICY IF EXISTS "anon_select_{table}" ON {table}')
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
