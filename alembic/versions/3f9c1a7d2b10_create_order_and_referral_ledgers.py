"""create_order_and_referral_ledgers

Revision ID: 3f9c1a7d2b10
Revises:
Create Date: 2026-10-19 09:12:31.104552

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

ORDER_STATUSES = (
    'pending', 'seller_notified', 'seller_accepted', 'confirmed', 'processing',
    'shipped', 'delivered', 'cancelled', 'refunded', 'returned',
)
order_status_enum = sa.Enum(*ORDER_STATUSES, name='order_status_enum')
referral_type_enum = sa.Enum('seller_account', 'product', name='referral_type_enum')


def upgrade() -> None:
    """Upgrade schema."""
    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('guest_id', sa.String(length=64), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_first_name', sa.String(length=100), nullable=True),
        sa.Column('customer_last_name', sa.String(length=100), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('shipping_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', order_status_enum, server_default='pending', nullable=False),
        sa.Column(
            'payment_status',
            sa.Enum(
                'pending', 'authorized', 'captured', 'failed', 'cancelled',
                'refunded', 'partially_refunded', name='payment_status_enum',
            ),
            server_default='pending',
            nullable=False,
        ),
        sa.Column(
            'payment_method',
            sa.Enum('cash_on_delivery', name='payment_method_enum'),
            server_default='cash_on_delivery',
            nullable=False,
        ),
        sa.Column('payment_transaction_id', sa.String(length=100), nullable=True),
        sa.Column('shipping_address', JSON, nullable=False),
        sa.Column('billing_address', JSON, nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('estimated_delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'user_id IS NOT NULL OR guest_id IS NOT NULL', name='ck_orders_buyer_reference'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status_created', 'orders', ['status', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_slug', sa.String(length=255), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('selected_variants', JSON, nullable=True),
        sa.Column('product_snapshot', JSON, nullable=True),
        sa.Column('thumbnail_image', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])
    op.create_index('ix_order_items_seller_id', 'order_items', ['seller_id'])

    op.create_table(
        'order_status_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('previous_status', order_status_enum, nullable=True),
        sa.Column('status', order_status_enum, nullable=False),
        sa.Column('changed_by', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('notification_sent', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    # Commissions
    op.create_table(
        'commissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('order_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'calculated', 'paid', 'cancelled', name='commission_status_enum'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payout_reference', sa.String(length=100), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commissions_order_id', 'commissions', ['order_id'])
    op.create_index('ix_commissions_seller_status', 'commissions', ['seller_id', 'status'])
    op.create_index(
        'uq_commissions_order_seller_live',
        'commissions',
        ['order_id', 'seller_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )

    # Seller notifications
    op.create_table(
        'seller_notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column(
            'type',
            sa.Enum(
                'new_order', 'order_accepted', 'order_status_update', 'commission_earned',
                name='notification_type_enum',
            ),
            nullable=False,
        ),
        sa.Column(
            'status',
            sa.Enum('unread', 'read', 'archived', name='notification_status_enum'),
            server_default='unread',
            nullable=False,
        ),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', JSON, nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_seller_notifications_order_id', 'seller_notifications', ['order_id'])
    op.create_index(
        'ix_seller_notifications_seller_status', 'seller_notifications', ['seller_id', 'status']
    )

    # Referral codes
    op.create_table(
        'referral_codes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('type', referral_type_enum, nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_usage', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('product_id', sa.String(length=64), nullable=True),
        sa.Column('seller_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'max_usage IS NULL OR usage_count <= max_usage', name='ck_referral_codes_usage_cap'
        ),
        sa.CheckConstraint('usage_count >= 0', name='ck_referral_codes_usage_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_referral_codes_code', 'referral_codes', ['code'], unique=True)
    op.create_index('ix_referral_codes_user_id', 'referral_codes', ['user_id'])

    # Referrals
    op.create_table(
        'referrals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('referrer_id', sa.String(length=64), nullable=False),
        sa.Column('referred_id', sa.String(length=64), nullable=False),
        sa.Column('type', referral_type_enum, nullable=False),
        sa.Column(
            'status',
            sa.Enum(
                'pending', 'active', 'completed', 'expired', 'cancelled',
                name='referral_status_enum',
            ),
            nullable=False,
        ),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('referral_code_id', sa.Uuid(), nullable=True),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('total_commission', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('product_id', sa.String(length=64), nullable=True),
        sa.Column('seller_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['referral_code_id'], ['referral_codes.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_id', 'type', name='uq_referrals_referred_type'),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_seller_id', 'referrals', ['seller_id'])
    op.create_index('ix_referrals_status_type', 'referrals', ['status', 'type'])

    op.create_table(
        'referral_commissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('referral_id', sa.Uuid(), nullable=False),
        sa.Column(
            'source',
            sa.Enum('order', 'seller_revenue', name='referral_commission_source_enum'),
            nullable=False,
        ),
        sa.Column('accrual_key', sa.String(length=80), nullable=False),
        sa.Column('base_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column(
            'status',
            sa.Enum(
                'pending', 'earned', 'paid', 'cancelled',
                name='referral_commission_status_enum',
            ),
            nullable=False,
        ),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payout_transaction_id', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('revenue_snapshot_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'referral_id', 'accrual_key', name='uq_referral_commissions_accrual'
        ),
    )
    op.create_index(
        'ix_referral_commissions_referral_id', 'referral_commissions', ['referral_id']
    )
    op.create_index('ix_referral_commissions_order_id', 'referral_commissions', ['order_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('referral_commissions')
    op.drop_table('referrals')
    op.drop_table('referral_codes')
    op.drop_table('seller_notifications')
    op.drop_table('commissions')
    op.drop_table('order_status_history')
    op.drop_table('order_items')
    op.drop_table('orders')

    bind = op.get_bind()
    for enum_name in (
        'referral_commission_status_enum',
        'referral_commission_source_enum',
        'referral_status_enum',
        'referral_type_enum',
        'notification_status_enum',
        'notification_type_enum',
        'commission_status_enum',
        'payment_method_enum',
        'payment_status_enum',
        'order_status_enum',
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
