"""initial salesdesk schema

Revision ID: s001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete salesdesk schema:
- users: admins and journalists
- clients: advertisers
- sales: ad sales with the pending/approved/rejected lifecycle
- invoices: one per approved sale, unique sale_id and invoice_number
- commission_payments: disbursements, reconciled against sales in aggregate
- settings: organization key-value configuration
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 's001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """
    Create all tables from scratch.

    WHY the unique constraints on invoices: invoice numbers are read-then-
    incremented, so the database is what rejects a duplicate allocated by a
    concurrent request (the service retries with a fresh number).
    """

    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])

    # ============================================================================
    # clients
    # ============================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('added_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['added_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_clients_added_by', 'clients', ['added_by_user_id'])

    # ============================================================================
    # sales: status is pending -> approved | rejected
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('journalist_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('ad_type', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('proof_of_payment_path', sa.String(length=500), nullable=True),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False, server_default='10.00'),
        sa.Column('commission_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['journalist_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint('amount > 0', name='ck_sales_amount_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_client_id', 'sales', ['client_id'])
    op.create_index('ix_sales_journalist_id', 'sales', ['journalist_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_journalist_status', 'sales', ['journalist_id', 'status'])
    op.create_index('ix_sales_payment_date', 'sales', ['payment_date'])

    # ============================================================================
    # invoices: immutable, one per approved sale
    # ============================================================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('client_name', sa.String(length=255), nullable=False),
        sa.Column('client_phone', sa.String(length=20), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('ad_type', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('generated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('pdf_path', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['generated_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('sale_id', name='uq_invoices_sale'),
        sa.UniqueConstraint('invoice_number', name='uq_invoices_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_invoices_sale_id', 'invoices', ['sale_id'])

    # ============================================================================
    # commission_payments
    # ============================================================================
    op.create_table(
        'commission_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('journalist_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('paid_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['journalist_id'], ['users.id']),
        sa.ForeignKeyConstraint(['paid_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint('amount > 0', name='ck_commission_payments_amount_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_commission_payments_journalist', 'commission_payments', ['journalist_id'])

    # ============================================================================
    # settings
    # ============================================================================
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('setting_key', sa.String(length=100), nullable=False),
        sa.Column('setting_value', sa.Text(), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('setting_key', name='uq_settings_key'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('settings')
    op.drop_index('ix_commission_payments_journalist', table_name='commission_payments')
    op.drop_table('commission_payments')
    op.drop_index('ix_invoices_sale_id', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('ix_sales_payment_date', table_name='sales')
    op.drop_index('ix_sales_journalist_status', table_name='sales')
    op.drop_index('ix_sales_status', table_name='sales')
    op.drop_index('ix_sales_journalist_id', table_name='sales')
    op.drop_index('ix_sales_client_id', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_clients_added_by', table_name='clients')
    op.drop_table('clients')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
