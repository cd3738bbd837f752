"""initial ledger schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates every ledger table:
- users, audit_logs
- customers, suppliers, customer_supplier_links
- receipts, inventory_entries, payments and their allocation links
- employees, payroll_entries, debris_entries
- invoices, invoice_receipts
- pair_settlements, settlement_allocations
- cash_entries, cash_custody_entries
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# =========================================================================
# Enum types (created once, reused by column definitions)
# =========================================================================
user_role_enum = postgresql.ENUM(
    'ADMIN', 'MANAGER', 'WORKER',
    name='user_role', create_type=False
)
payment_type_enum = postgresql.ENUM(
    'GENERAL_EXPENSE', 'SUPPLIER', 'RECEIPT', 'PAYROLL_SALARY', 'PAYROLL_PIECEWORK',
    'PAYROLL_RUN', 'CUSTOMER_PAYMENT', 'DEBRIS_REMOVAL', 'OWNER_DRAW',
    name='payment_type', create_type=False
)
receipt_type_enum = postgresql.ENUM(
    'NORMAL', 'TVA',
    name='receipt_type', create_type=False
)
inventory_entry_type_enum = postgresql.ENUM(
    'PURCHASE', 'PRODUCTION',
    name='inventory_entry_type', create_type=False
)
debris_status_enum = postgresql.ENUM(
    'PENDING', 'REMOVED',
    name='debris_status', create_type=False
)
invoice_status_enum = postgresql.ENUM(
    'PENDING', 'PAID', 'CANCELLED',
    name='invoice_status', create_type=False
)
cash_entry_type_enum = postgresql.ENUM(
    'DEPOSIT', 'WITHDRAW', 'OWNER_DRAW',
    name='cash_entry_type', create_type=False
)
cash_custody_type_enum = postgresql.ENUM(
    'HANDOFF', 'RETURN',
    name='cash_custody_type', create_type=False
)

ALL_ENUMS = (
    user_role_enum,
    payment_type_enum,
    receipt_type_enum,
    inventory_entry_type_enum,
    debris_status_enum,
    invoice_status_enum,
    cash_entry_type_enum,
    cash_custody_type_enum,
)

MONEY = sa.Numeric(18, 2)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    # =====================================================================
    # 1. users / audit_logs
    # =====================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', user_role_enum, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('user_email', sa.String(255), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_action_created', 'audit_logs', ['action', 'created_at'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])

    # =====================================================================
    # 2. parties
    # =====================================================================
    for table in ('customers', 'suppliers'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('name', sa.String(200), nullable=False),
            sa.Column('phone', sa.String(50), nullable=True),
            sa.Column('manual_balance_override', MONEY, nullable=True),
            sa.Column('manual_balance_note', sa.Text(), nullable=True),
            sa.Column('manual_balance_updated_at', sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index(f'ix_{table}_name', table, ['name'])

    op.create_table(
        'customer_supplier_links',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('customer_id', name='uq_csl_customer'),
        sa.UniqueConstraint('supplier_id', name='uq_csl_supplier'),
    )

    # =====================================================================
    # 3. receipts / purchases / employees / payments
    # =====================================================================
    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('receipt_no', sa.String(50), nullable=True, unique=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('type', receipt_type_enum, nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('walk_in_name', sa.String(200), nullable=True),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('amount_paid', MONEY, nullable=False, server_default='0'),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        *_timestamps(),
        sa.CheckConstraint('total >= 0', name='ck_receipt_total_non_negative'),
    )
    op.create_index('ix_receipts_customer_date', 'receipts', ['customer_id', 'date'])

    op.create_table(
        'inventory_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('inventory_no', sa.String(50), nullable=True),
        sa.Column('entry_date', sa.DateTime(), nullable=False),
        sa.Column('type', inventory_entry_type_enum, nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Numeric(18, 3), nullable=False, server_default='0'),
        sa.Column('unit_cost', MONEY, nullable=True),
        sa.Column('total_cost', MONEY, nullable=True),
        sa.Column('amount_paid', MONEY, nullable=False, server_default='0'),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        *_timestamps(),
    )
    op.create_index('ix_inventory_supplier_date', 'inventory_entries', ['supplier_id', 'entry_date'])

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('type', payment_type_enum, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_legacy', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
    )
    op.create_index('ix_payments_type_date', 'payments', ['type', 'date'])
    op.create_index('ix_payments_customer', 'payments', ['customer_id'])
    op.create_index('ix_payments_supplier', 'payments', ['supplier_id'])

    # =====================================================================
    # 4. allocation links
    # =====================================================================
    op.create_table(
        'receipt_payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_rp_amount_positive'),
    )
    op.create_index('ix_rp_payment', 'receipt_payments', ['payment_id'])
    op.create_index('ix_rp_receipt', 'receipt_payments', ['receipt_id'])

    op.create_table(
        'inventory_payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inventory_entry_id', sa.Integer(), sa.ForeignKey('inventory_entries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_ip_amount_positive'),
    )
    op.create_index('ix_ip_payment', 'inventory_payments', ['payment_id'])
    op.create_index('ix_ip_entry', 'inventory_payments', ['inventory_entry_id'])

    # =====================================================================
    # 5. payroll / debris
    # =====================================================================
    op.create_table(
        'payroll_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payments.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payroll_entries_employee_id', 'payroll_entries', ['employee_id'])

    op.create_table(
        'debris_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('volume', sa.Numeric(18, 3), nullable=False, server_default='0'),
        sa.Column('status', debris_status_enum, nullable=False),
        sa.Column('removal_cost', MONEY, nullable=True),
        sa.Column('removal_date', sa.DateTime(), nullable=True),
        sa.Column('removal_payment_id', sa.Integer(), sa.ForeignKey('payments.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )

    # =====================================================================
    # 6. invoices
    # =====================================================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('invoice_no', sa.String(20), nullable=True, unique=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receipt_type', receipt_type_enum, nullable=False),
        sa.Column('status', invoice_status_enum, nullable=False),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.Column('vat_rate', sa.Numeric(6, 4), nullable=True),
        sa.Column('vat_amount', MONEY, nullable=True),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('amount_paid', MONEY, nullable=False, server_default='0'),
        sa.Column('outstanding', MONEY, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_invoices_customer_status', 'invoices', ['customer_id', 'status'])

    op.create_table(
        'invoice_receipts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('invoice_id', sa.Integer(), sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('receipt_id', name='uq_ir_receipt'),
    )
    op.create_index('ix_ir_invoice', 'invoice_receipts', ['invoice_id'])

    # =====================================================================
    # 7. barter settlements
    # =====================================================================
    op.create_table(
        'pair_settlements',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_ps_amount_positive'),
    )
    op.create_index('ix_ps_customer', 'pair_settlements', ['customer_id'])
    op.create_index('ix_ps_supplier', 'pair_settlements', ['supplier_id'])

    op.create_table(
        'settlement_allocations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('settlement_id', sa.Integer(), sa.ForeignKey('pair_settlements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receipt_id', sa.Integer(), sa.ForeignKey('receipts.id', ondelete='CASCADE'), nullable=True),
        sa.Column('inventory_entry_id', sa.Integer(), sa.ForeignKey('inventory_entries.id', ondelete='CASCADE'), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_sa_amount_positive'),
        sa.CheckConstraint(
            '(receipt_id IS NULL) <> (inventory_entry_id IS NULL)',
            name='ck_sa_single_target',
        ),
    )
    op.create_index('ix_sa_receipt', 'settlement_allocations', ['receipt_id'])
    op.create_index('ix_sa_entry', 'settlement_allocations', ['inventory_entry_id'])

    # =====================================================================
    # 8. cash box / custody
    # =====================================================================
    op.create_table(
        'cash_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('type', cash_entry_type_enum, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cash_entries_created_at', 'cash_entries', ['created_at'])

    op.create_table(
        'cash_custody_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('type', cash_custody_type_enum, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('from_employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('to_employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cce_created', 'cash_custody_entries', ['created_at'])


def downgrade() -> None:
    for table in (
        'cash_custody_entries',
        'cash_entries',
        'settlement_allocations',
        'pair_settlements',
        'invoice_receipts',
        'invoices',
        'debris_entries',
        'payroll_entries',
        'inventory_payments',
        'receipt_payments',
        'payments',
        'employees',
        'inventory_entries',
        'receipts',
        'customer_supplier_links',
        'suppliers',
        'customers',
        'audit_logs',
        'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
