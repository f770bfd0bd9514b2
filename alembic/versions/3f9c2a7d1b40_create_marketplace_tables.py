"""create_marketplace_tables

Revision ID: 3f9c2a7d1b40
Revises:
Create Date: 2026-10-19 09:12:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


vendor_status = postgresql.ENUM(
    'pending', 'approved', 'rejected', 'suspended',
    name='marketplace_vendor_status_enum', create_type=False,
)
order_payment_status = postgresql.ENUM(
    'pending', 'paid', 'failed',
    name='marketplace_order_payment_status_enum', create_type=False,
)
fulfillment_status = postgresql.ENUM(
    'pending', 'processing', 'shipped', 'delivered', 'cancelled',
    name='marketplace_fulfillment_status_enum', create_type=False,
)
payment_status = postgresql.ENUM(
    'pending', 'success', 'failed',
    name='marketplace_payment_status_enum', create_type=False,
)
payment_type = postgresql.ENUM(
    'order_payment', 'vendor_payout',
    name='marketplace_payment_type_enum', create_type=False,
)

ENUMS = (
    vendor_status,
    order_payment_status,
    fulfillment_status,
    payment_status,
    payment_type,
)

ONE_PRODUCT_REF = (
    "(vendor_product_id IS NOT NULL AND store_product_id IS NULL) OR "
    "(vendor_product_id IS NULL AND store_product_id IS NOT NULL)"
)


def upgrade() -> None:
    """Upgrade schema - Add marketplace catalog, commerce and finance tables."""
    bind = op.get_bind()
    # fulfillment status is shared by orders and order items, so create types once
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        'marketplace_vendors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('commission_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('status', vendor_status, server_default='pending', nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=True),
        sa.Column('account_number', sa.String(length=50), nullable=True),
        sa.Column('ifsc_code', sa.String(length=20), nullable=True),
        sa.Column('upi_id', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 1)',
            name='vendor_commission_rate_range',
        ),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'marketplace_vendor_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vendor_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('price >= 0', name='vendor_product_price'),
        sa.ForeignKeyConstraint(['vendor_id'], ['marketplace_vendors.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_marketplace_vendor_products_vendor_id',
        'marketplace_vendor_products',
        ['vendor_id'],
    )

    op.create_table(
        'marketplace_store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('price >= 0', name='store_product_price'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'marketplace_cart_lines',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('vendor_product_id', sa.Uuid(), nullable=True),
        sa.Column('store_product_id', sa.Uuid(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(ONE_PRODUCT_REF, name='cart_line_one_product'),
        sa.CheckConstraint('quantity > 0', name='cart_line_positive_quantity'),
        sa.ForeignKeyConstraint(['vendor_product_id'], ['marketplace_vendor_products.id']),
        sa.ForeignKeyConstraint(['store_product_id'], ['marketplace_store_products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_marketplace_cart_lines_user_id', 'marketplace_cart_lines', ['user_id'])

    op.create_table(
        'marketplace_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_status', order_payment_status, server_default='pending', nullable=False),
        sa.Column('order_status', fulfillment_status, server_default='pending', nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('total_amount >= 0', name='order_total_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_marketplace_orders_user_id', 'marketplace_orders', ['user_id'])
    op.create_index(
        'ix_marketplace_orders_payment_status', 'marketplace_orders', ['payment_status']
    )

    op.create_table(
        'marketplace_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('vendor_product_id', sa.Uuid(), nullable=True),
        sa.Column('store_product_id', sa.Uuid(), nullable=True),
        sa.Column('vendor_id', sa.Uuid(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', fulfillment_status, server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(ONE_PRODUCT_REF, name='order_item_one_product'),
        sa.CheckConstraint('quantity > 0', name='order_item_positive_quantity'),
        sa.CheckConstraint(
            'vendor_id IS NULL OR vendor_product_id IS NOT NULL',
            name='order_item_vendor_matches_origin',
        ),
        sa.ForeignKeyConstraint(['order_id'], ['marketplace_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vendor_product_id'], ['marketplace_vendor_products.id']),
        sa.ForeignKeyConstraint(['store_product_id'], ['marketplace_store_products.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['marketplace_vendors.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_marketplace_order_items_order_id', 'marketplace_order_items', ['order_id'])
    op.create_index('ix_marketplace_order_items_vendor_id', 'marketplace_order_items', ['vendor_id'])

    op.create_table(
        'marketplace_payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('vendor_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('payment_type', payment_type, nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('gateway_order_id', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount >= 0', name='payment_non_negative_amount'),
        sa.CheckConstraint(
            "(payment_type = 'order_payment' AND order_id IS NOT NULL) OR "
            "(payment_type = 'vendor_payout' AND vendor_id IS NOT NULL)",
            name='payment_type_reference',
        ),
        sa.ForeignKeyConstraint(['order_id'], ['marketplace_orders.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['marketplace_vendors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id'),
    )
    op.create_index('ix_marketplace_payments_order_id', 'marketplace_payments', ['order_id'])
    op.create_index('ix_marketplace_payments_vendor_id', 'marketplace_payments', ['vendor_id'])
    op.create_index(
        'ix_marketplace_payments_type_status',
        'marketplace_payments',
        ['payment_type', 'payment_status'],
    )

    op.create_table(
        'marketplace_commissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vendor_id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('rate', sa.Numeric(5, 4), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('commission_amount >= 0', name='commission_non_negative'),
        sa.ForeignKeyConstraint(['vendor_id'], ['marketplace_vendors.id']),
        sa.ForeignKeyConstraint(['order_id'], ['marketplace_orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_id', 'order_id', name='unique_commission_vendor_order'),
    )
    op.create_index('ix_marketplace_commissions_vendor_id', 'marketplace_commissions', ['vendor_id'])
    op.create_index('ix_marketplace_commissions_order_id', 'marketplace_commissions', ['order_id'])


def downgrade() -> None:
    """Downgrade schema - Drop marketplace tables and enum types."""
    op.drop_table('marketplace_commissions')
    op.drop_table('marketplace_payments')
    op.drop_table('marketplace_order_items')
    op.drop_table('marketplace_orders')
    op.drop_table('marketplace_cart_lines')
    op.drop_table('marketplace_store_products')
    op.drop_table('marketplace_vendor_products')
    op.drop_table('marketplace_vendors')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
