"""create users, recurring expenses, expenses, push and notification settings tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f4b5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('income', sa.Numeric(14, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'recurring_expenses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('subcategory', sa.String(100), nullable=True),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('day_of_month', sa.SmallInteger(), nullable=False),
        sa.Column('frequency', sa.String(20), nullable=True, server_default='monthly'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'ix_recurring_expenses_user_active_day',
        'recurring_expenses', ['user_id', 'active', 'day_of_month'],
    )

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('subcategory', sa.String(100), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('recurring_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'ix_expenses_user_recurring_date',
        'expenses', ['user_id', 'recurring_id', 'date'],
    )

    op.create_table(
        'push_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('endpoint', sa.Text(), nullable=False),
        sa.Column('p256dh', sa.Text(), nullable=False),
        sa.Column('auth', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'user_notification_settings',
        sa.Column('user_id', sa.Integer(), primary_key=True),
        sa.Column('push_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('daily_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('daily_message', sa.Text(), nullable=True),
        sa.Column('weekly_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('weekly_day_of_week', sa.SmallInteger(), nullable=False, server_default='0'),
        sa.Column('weekly_hour', sa.SmallInteger(), nullable=False, server_default='21'),
        sa.Column('weekly_minute', sa.SmallInteger(), nullable=False, server_default='0'),
        sa.Column('weekly_message', sa.Text(), nullable=True),
        sa.Column('weekly_last_sent_date', sa.Date(), nullable=True),
        sa.Column('weekly_last_sent_hour', sa.SmallInteger(), nullable=True),
        sa.Column('weekly_last_sent_minute', sa.SmallInteger(), nullable=True),
        sa.Column('income_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('income_day_of_month', sa.SmallInteger(), nullable=False, server_default='28'),
        sa.Column('income_last_sent_month', sa.String(7), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('user_notification_settings')
    op.drop_table('push_subscriptions')
    op.drop_index('ix_expenses_user_recurring_date', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_recurring_expenses_user_active_day', table_name='recurring_expenses')
    op.drop_table('recurring_expenses')
    op.drop_table('users')
