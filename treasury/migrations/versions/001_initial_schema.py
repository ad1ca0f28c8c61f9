"""Initial treasury schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-11-09 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create treasury tables."""
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_user_full_name', 'users', ['full_name'])

    op.create_table(
        'groups',
        *_timestamps(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'apartments',
        *_timestamps(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'budgets',
        *_timestamps(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_budgets_group_id', 'budgets', ['group_id'])

    op.create_table(
        'funds',
        *_timestamps(),
        sa.Column('budget_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('allocated_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_funds_budget_id', 'funds', ['budget_id'])
    op.create_index('idx_fund_budget_name', 'funds', ['budget_id', 'name'])

    op.create_table(
        'recurring_transfers',
        *_timestamps(),
        sa.Column('recipient_user_id', sa.Integer(), nullable=False),
        sa.Column('fund_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('frequency', sa.String(20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['recipient_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['fund_id'], ['funds.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recurring_transfers_recipient_user_id', 'recurring_transfers', ['recipient_user_id'])
    op.create_index('ix_recurring_transfers_fund_id', 'recurring_transfers', ['fund_id'])
    op.create_index('idx_recurring_transfer_status', 'recurring_transfers', ['status'])

    op.create_table(
        'reimbursements',
        *_timestamps(),
        sa.Column('fund_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('recipient_user_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('receipt_url', sa.String(512), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('recurring_transfer_id', sa.Integer(), nullable=True),
        sa.Column('recurring_period_start', sa.Date(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['fund_id'], ['funds.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['recipient_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['recurring_transfer_id'], ['recurring_transfers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('recurring_transfer_id', 'recurring_period_start', name='uq_reimbursement_recurring_period'),
    )
    op.create_index('ix_reimbursements_fund_id', 'reimbursements', ['fund_id'])
    op.create_index('ix_reimbursements_user_id', 'reimbursements', ['user_id'])
    op.create_index('ix_reimbursements_recipient_user_id', 'reimbursements', ['recipient_user_id'])
    op.create_index('ix_reimbursements_expense_date', 'reimbursements', ['expense_date'])
    op.create_index('ix_reimbursements_recurring_transfer_id', 'reimbursements', ['recurring_transfer_id'])
    op.create_index('idx_reimbursement_fund_status', 'reimbursements', ['fund_id', 'status'])

    op.create_table(
        'charges',
        *_timestamps(),
        sa.Column('fund_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('charge_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['fund_id'], ['funds.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_charges_fund_id', 'charges', ['fund_id'])
    op.create_index('ix_charges_user_id', 'charges', ['user_id'])
    op.create_index('ix_charges_charge_date', 'charges', ['charge_date'])
    op.create_index('idx_charge_fund_status', 'charges', ['fund_id', 'status'])

    op.create_table(
        'direct_expenses',
        *_timestamps(),
        sa.Column('fund_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('payee', sa.String(255), nullable=False),
        sa.Column('receipt_url', sa.String(512), nullable=True),
        sa.Column('apartment_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['fund_id'], ['funds.id'], ),
        sa.ForeignKeyConstraint(['apartment_id'], ['apartments.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_direct_expenses_fund_id', 'direct_expenses', ['fund_id'])
    op.create_index('ix_direct_expenses_expense_date', 'direct_expenses', ['expense_date'])
    op.create_index('ix_direct_expenses_apartment_id', 'direct_expenses', ['apartment_id'])

    op.create_table(
        'planned_expenses',
        *_timestamps(),
        sa.Column('fund_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('planned_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(['fund_id'], ['funds.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_planned_expenses_fund_id', 'planned_expenses', ['fund_id'])
    op.create_index('ix_planned_expenses_planned_date', 'planned_expenses', ['planned_date'])

    op.create_table(
        'payment_transfers',
        *_timestamps(),
        sa.Column('recipient_user_id', sa.Integer(), nullable=False),
        sa.Column('budget_type', sa.String(20), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('reimbursement_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('executed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('executed_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['recipient_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ),
        sa.ForeignKeyConstraint(['executed_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_transfers_recipient_user_id', 'payment_transfers', ['recipient_user_id'])
    op.create_index(
        'uq_pending_transfer_per_scope',
        'payment_transfers',
        ['recipient_user_id', 'budget_type', sa.text('coalesce(group_id, 0)')],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'payment_transfer_items',
        *_timestamps(),
        sa.Column('payment_transfer_id', sa.Integer(), nullable=False),
        sa.Column('reimbursement_id', sa.Integer(), nullable=True),
        sa.Column('charge_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['payment_transfer_id'], ['payment_transfers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reimbursement_id'], ['reimbursements.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['charge_id'], ['charges.id'], ondelete='CASCADE'),
        sa.CheckConstraint('(reimbursement_id IS NULL) <> (charge_id IS NULL)', name='ck_transfer_item_single_record'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_transfer_items_payment_transfer_id', 'payment_transfer_items', ['payment_transfer_id'])
    op.create_index('ix_payment_transfer_items_reimbursement_id', 'payment_transfer_items', ['reimbursement_id'])
    op.create_index('ix_payment_transfer_items_charge_id', 'payment_transfer_items', ['charge_id'])


def downgrade() -> None:
    """Drop treasury tables."""
    op.drop_table('payment_transfer_items')
    op.drop_index('uq_pending_transfer_per_scope', table_name='payment_transfers')
    op.drop_table('payment_transfers')
    op.drop_table('planned_expenses')
    op.drop_table('direct_expenses')
    op.drop_table('charges')
    op.drop_table('reimbursements')
    op.drop_table('recurring_transfers')
    op.drop_table('funds')
    op.drop_table('budgets')
    op.drop_table('apartments')
    op.drop_table('groups')
    op.drop_table('users')
