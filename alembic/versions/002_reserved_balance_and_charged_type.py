"""Record the reserved balance on leave requests; charge leave types to another type's balance

Revision ID: 002_reserved_balance
Revises: 001_initial_schema
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_reserved_balance'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    cols = [c['name'] for c in sa.inspect(op.get_bind()).get_columns('leave_requests')]
    if 'reserved_balance_id' in cols:
        return

    with op.batch_alter_table('leave_types') as batch_op:
        batch_op.add_column(sa.Column('balance_leave_type_id', sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            'fk_leave_types_balance_leave_type_id', 'leave_types',
            ['balance_leave_type_id'], ['id'], ondelete='SET NULL',
        )

    with op.batch_alter_table('leave_requests') as batch_op:
        batch_op.add_column(sa.Column('reserved_balance_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('reserved_days', sa.Numeric(6, 2), nullable=True))
        batch_op.create_foreign_key(
            'fk_leave_requests_reserved_balance_id', 'leave_balances',
            ['reserved_balance_id'], ['id'], ondelete='SET NULL',
        )

    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        start_year = "CAST(strftime('%Y', leave_requests.start_date) AS INTEGER)"
    else:
        start_year = "CAST(EXTRACT(YEAR FROM leave_requests.start_date) AS INTEGER)"

    # Requests approved before this revision reserved their days on their own type's row
    op.execute(
        f"""
        UPDATE leave_requests
        SET reserved_days = days,
            reserved_balance_id = (
                SELECT b.id FROM leave_balances b
                JOIN leave_types t ON t.id = b.leave_type_id
                WHERE b.user_id = leave_requests.user_id
                  AND b.leave_type_id = leave_requests.leave_type_id
                  AND b.year = {start_year}
                  AND t.tracks_balance = true
            )
        WHERE status = 'APPROVED'
        """
    )
    op.execute("UPDATE leave_requests SET reserved_days = NULL WHERE reserved_balance_id IS NULL")


def downgrade() -> None:
    with op.batch_alter_table('leave_requests') as batch_op:
        batch_op.drop_constraint('fk_leave_requests_reserved_balance_id', type_='foreignkey')
        batch_op.drop_column('reserved_days')
        batch_op.drop_column('reserved_balance_id')

    with op.batch_alter_table('leave_types') as batch_op:
        batch_op.drop_constraint('fk_leave_types_balance_leave_type_id', type_='foreignkey')
        batch_op.drop_column('balance_leave_type_id')
