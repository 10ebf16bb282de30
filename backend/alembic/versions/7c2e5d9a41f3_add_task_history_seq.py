"""Add seq to task_history

Revision ID: 7c2e5d9a41f3
Revises: 3f9a1c7e2b40
Create Date: 2026-10-19 14:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '7c2e5d9a41f3'
down_revision: Union[str, Sequence[str], None] = '3f9a1c7e2b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Insertion order of history entries, used as the secondary sort key."""
    with op.batch_alter_table('task_history', schema=None) as batch_op:
        batch_op.add_column(sa.Column('seq', sa.Integer(), nullable=False, server_default='0'))


def downgrade() -> None:
    with op.batch_alter_table('task_history', schema=None) as batch_op:
        batch_op.drop_column('seq')
