"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Tables:
- Core: users, rooms, bookings, room_nights
- Add-ons: services, booking_services
- Guest feedback: reviews
- Loyalty: loyalty_points, point_transactions
- Promotions: promotional_codes, promotional_code_usage
- Billing: invoices
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all database tables."""

    # ===========================================
    # 1. USERS TABLE
    # ===========================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), default='customer'),
        sa.Column('is_vip', sa.Boolean, default=False),
        sa.Column('preferences', sa.JSON, nullable=True),
        sa.Column('is_active', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # ===========================================
    # 2. ROOMS TABLE
    # ===========================================
    op.create_table(
        'rooms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('number', sa.String(20), unique=True, nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('capacity', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), default='available'),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('amenities', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_rooms_number', 'rooms', ['number'])
    op.create_index('ix_rooms_status', 'rooms', ['status'])

    # ===========================================
    # 3. BOOKINGS TABLE
    # ===========================================
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='SET NULL'), nullable=True),
        sa.Column('check_in', sa.DateTime, nullable=False),
        sa.Column('check_out', sa.DateTime, nullable=False),
        sa.Column('guests', sa.Integer, nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('special_requests', sa.Text, nullable=True),
        # Payment metadata
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_intent_id', sa.String(255), nullable=True),
        sa.Column('deposit_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('remaining_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default='0'),
        sa.Column('check_in_time', sa.String(10), server_default='14:00'),
        sa.Column('check_out_time', sa.String(10), server_default='12:00'),
        # Timestamps
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('cancelled_at', sa.DateTime, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_booking_room_window', 'bookings', ['room_id', 'check_in', 'check_out'])
    op.create_index('ix_booking_status', 'bookings', ['status'])
    op.create_index('ix_booking_user', 'bookings', ['user_id'])

    # ===========================================
    # 4. ROOM NIGHTS (one row per occupied night)
    # ===========================================
    op.create_table(
        'room_nights',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('night', sa.Date, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('room_id', 'night', name='uq_room_nights_room_night'),
    )
    op.create_index('ix_room_nights_room_night', 'room_nights', ['room_id', 'night'])
    op.create_index('ix_room_nights_booking_id', 'room_nights', ['booking_id'])

    # ===========================================
    # 5. SERVICES / BOOKING SERVICES
    # ===========================================
    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('category', sa.String(100), nullable=False, server_default='general'),
        sa.Column('is_active', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'booking_services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_booking_services_booking_id', 'booking_services', ['booking_id'])

    # ===========================================
    # 6. REVIEWS
    # ===========================================
    op.create_table(
        'reviews',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('rating', sa.Integer, nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('comment', sa.Text, nullable=True),
        sa.Column('cleanliness', sa.Integer, server_default='5'),
        sa.Column('service', sa.Integer, server_default='5'),
        sa.Column('amenities', sa.Integer, server_default='5'),
        sa.Column('value_for_money', sa.Integer, server_default='5'),
        sa.Column('location', sa.Integer, server_default='5'),
        sa.Column('would_recommend', sa.Boolean, server_default=sa.true()),
        sa.Column('guest_type', sa.String(50), server_default='Individual'),
        sa.Column('stay_purpose', sa.String(50), server_default='Leisure'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('booking_id', name='uq_reviews_booking'),
    )
    op.create_index('ix_reviews_room', 'reviews', ['room_id'])

    # ===========================================
    # 7. LOYALTY
    # ===========================================
    op.create_table(
        'loyalty_points',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('points', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_earned', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'point_transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reward_id', sa.String(64), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('points', sa.Integer, nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('booking_id', 'type', name='uq_point_tx_booking_type'),
    )
    op.create_index('ix_point_tx_user', 'point_transactions', ['user_id', 'created_at'])

    # ===========================================
    # 8. PROMOTIONS
    # ===========================================
    op.create_table(
        'promotional_codes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(50), unique=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('min_amount', sa.Numeric(12, 2), server_default='0'),
        sa.Column('max_discount', sa.Numeric(12, 2), nullable=True),
        sa.Column('usage_limit', sa.Integer, nullable=True),
        sa.Column('used_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('per_user_limit', sa.Integer, nullable=True),
        sa.Column('valid_from', sa.DateTime, nullable=False),
        sa.Column('valid_to', sa.DateTime, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_promotional_codes_code', 'promotional_codes', ['code'])

    op.create_table(
        'promotional_code_usage',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code_id', sa.String(36), sa.ForeignKey('promotional_codes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('code_id', 'booking_id', name='uq_promo_usage_code_booking'),
    )
    op.create_index('ix_promo_usage_code_user', 'promotional_code_usage', ['code_id', 'user_id'])

    # ===========================================
    # 9. INVOICES
    # ===========================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('invoice_number', sa.String(100), nullable=False, unique=True),
        sa.Column('room_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('services_total', sa.Numeric(12, 2), server_default='0'),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default='0'),
        sa.Column('tax_amount', sa.Numeric(12, 2), server_default='0'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_status', sa.String(20), server_default='unpaid'),
        sa.Column('paid_amount', sa.Numeric(12, 2), server_default='0'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    tables = [
        'invoices',
        'promotional_code_usage',
        'promotional_codes',
        'point_transactions',
        'loyalty_points',
        'reviews',
        'booking_services',
        'services',
        'room_nights',
        'bookings',
        'rooms',
        'users',
    ]
    for table in tables:
        op.drop_table(table)
