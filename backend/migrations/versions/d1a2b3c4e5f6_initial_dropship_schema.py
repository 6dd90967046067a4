"""initial dropship schema

Revision ID: d1a2b3c4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete schema from scratch:
- products: catalog with authoritative on-hand stock
- shippers / shipper_rates: carriers and their per-governorate rate tables
- orders / order_items / order_status_history: orders with status lifecycle
- expenses: general business expenses
- app_settings: singleton settings row (store name, notification rules)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'd1a2b3c4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """
    Create all tables from scratch.

    WHY money columns are integers: all amounts are stored in cents so totals
    and profit never suffer float rounding.
    """

    # ============================================================================
    # products: Product master (stock is the authoritative on-hand count)
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sell_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock_threshold', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_is_deleted', 'products', ['is_deleted'])
    op.create_index('ix_products_deleted_name', 'products', ['is_deleted', 'name'])

    # ============================================================================
    # shippers + shipper_rates
    # ============================================================================
    op.create_table(
        'shippers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('return_cost_cents', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shippers_is_deleted', 'shippers', ['is_deleted'])

    # WHY unique (shipper_id, governorate): pricing matches governorates exactly,
    # so a duplicate row would make the rate ambiguous
    op.create_table(
        'shipper_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shipper_id', sa.Integer(), nullable=False),
        sa.Column('governorate', sa.String(length=120), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['shipper_id'], ['shippers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shipper_id', 'governorate', name='uq_shipper_rates_governorate'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shipper_rates_shipper_id', 'shipper_rates', ['shipper_id'])

    # ============================================================================
    # orders: Customer orders with status lifecycle and return bookkeeping
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('alt_phone', sa.String(length=32), nullable=True),
        sa.Column('governorate', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('address', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('shipper_id', sa.Integer(), nullable=True),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shipping_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='UNDER_REVIEW'),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('ship_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_days', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('print_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('return_cost_cents', sa.Integer(), nullable=True),
        sa.Column('delivered_quantity', sa.Integer(), nullable=True),
        sa.Column('returned_quantity', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shipper_id'], ['shippers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_shipper_id', 'orders', ['shipper_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_is_deleted', 'orders', ['is_deleted'])
    op.create_index('ix_orders_status_date', 'orders', ['status', 'date'])
    op.create_index('ix_orders_deleted_date', 'orders', ['is_deleted', 'date'])

    # WHY no FK on product_id: orders keep referencing removed catalog products
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('returned_quantity', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'product_id', name='uq_order_items_order_product'),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table(
        'order_status_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    # ============================================================================
    # expenses
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('note', sa.String(length=500), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_is_deleted', 'expenses', ['is_deleted'])
    op.create_index('ix_expenses_deleted_date', 'expenses', ['is_deleted', 'date'])

    # ============================================================================
    # app_settings: singleton (id=1)
    # ============================================================================
    op.create_table(
        'app_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('notification_rules', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    """Drop all tables in reverse dependency order."""
    op.drop_table('app_settings')
    op.drop_index('ix_expenses_deleted_date', table_name='expenses')
    op.drop_index('ix_expenses_is_deleted', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_order_status_history_order_id', table_name='order_status_history')
    op.drop_table('order_status_history')
    op.drop_index('ix_order_items_product_id', table_name='order_items')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_deleted_date', table_name='orders')
    op.drop_index('ix_orders_status_date', table_name='orders')
    op.drop_index('ix_orders_is_deleted', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_shipper_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_shipper_rates_shipper_id', table_name='shipper_rates')
    op.drop_table('shipper_rates')
    op.drop_index('ix_shippers_is_deleted', table_name='shippers')
    op.drop_table('shippers')
    op.drop_index('ix_products_deleted_name', table_name='products')
    op.drop_index('ix_products_is_deleted', table_name='products')
    op.drop_table('products')
