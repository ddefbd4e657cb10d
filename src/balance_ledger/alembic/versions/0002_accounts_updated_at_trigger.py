"""refresh accounts.updated_at on every update

Revision ID: 0002_accounts_updated_at_trigger
Revises: 0001_create_accounts_and_transactions
Create Date: 2026-10-12 10:30:00
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002_accounts_updated_at_trigger"
down_revision: Union[str, Sequence[str], None] = "0001_create_accounts_and_transactions"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_context().dialect.name != "postgresql":
        return
    op.execute(
        """
        CREATE OR REPLACE FUNCTION set_updated_at()
        RETURNS trigger AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_accounts_set_updated_at
        BEFORE UPDATE ON accounts
        FOR EACH ROW
        EXECUTE FUNCTION set_updated_at();
        """
    )


def downgrade() -> None:
    if op.get_context().dialect.name != "postgresql":
        return
    op.execute("DROP TRIGGER IF EXISTS trg_accounts_set_updated_at ON accounts")
    op.execute("DROP FUNCTION IF EXISTS set_updated_at()")
