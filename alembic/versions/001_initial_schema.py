"""Initial schema - Create dispatch tables

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create enum types (SQLAlchemy stores enum member names)
    op.execute(
        "CREATE TYPE orderstatus AS ENUM ('PENDING', 'CONFIRMED', 'PREPARING', 'READY', "
        "'PICKED_UP', 'DELIVERING', 'DELIVERED', 'CANCELLED')"
    )
    op.execute("CREATE TYPE routestatus AS ENUM ('ACTIVE', 'COMPLETED', 'CANCELLED')")
    op.execute("CREATE TYPE routeorderstatus AS ENUM ('PICKED_UP', 'DELIVERED', 'CANCELLED')")

    # Create drivers table
    op.create_table(
        'drivers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rating', sa.Float(), nullable=False, server_default='5.0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create restaurants and customers tables
    op.create_table(
        'restaurants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_number', sa.String(30), unique=True, nullable=False, index=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('driver_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('drivers.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('status', postgresql.ENUM('PENDING', 'CONFIRMED', 'PREPARING', 'READY', 'PICKED_UP', 'DELIVERING', 'DELIVERED', 'CANCELLED', name='orderstatus', create_type=False), nullable=False, server_default='PENDING', index=True),
        sa.Column('delivery_address', postgresql.JSON(), nullable=False),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('actual_delivery_time', sa.DateTime(), nullable=True),
    )

    # Create driver_routes table
    op.create_table(
        'driver_routes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('driver_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('drivers.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('status', postgresql.ENUM('ACTIVE', 'COMPLETED', 'CANCELLED', name='routestatus', create_type=False), nullable=False, server_default='ACTIVE', index=True),
        sa.Column('start_location', postgresql.JSON(), nullable=True),
        sa.Column('current_location', postgresql.JSON(), nullable=True),
        sa.Column('max_orders', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('current_order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_distance', sa.Float(), nullable=True, server_default='0.0'),
        sa.Column('total_duration', sa.Float(), nullable=True, server_default='0.0'),
        sa.Column('estimated_completion_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )

    # At most one active route per driver
    op.create_index(
        'uq_driver_routes_active_driver',
        'driver_routes',
        ['driver_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # Create route_orders table
    op.create_table(
        'route_orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('route_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('driver_routes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM('PICKED_UP', 'DELIVERED', 'CANCELLED', name='routeorderstatus', create_type=False), nullable=False, server_default='PICKED_UP'),
        sa.Column('pickup_time', sa.DateTime(), nullable=True),
        sa.Column('delivery_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('route_id', 'sequence_number', name='uq_route_orders_sequence'),
        sa.UniqueConstraint('route_id', 'order_id', name='uq_route_orders_order'),
    )

    # Create driver_locations table
    op.create_table(
        'driver_locations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('driver_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('drivers.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('bearing', sa.Float(), nullable=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='SET NULL'), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    # Drop indexes
    op.drop_index('uq_driver_routes_active_driver', table_name='driver_routes')

    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('driver_locations')
    op.drop_table('route_orders')
    op.drop_table('driver_routes')
    op.drop_table('orders')
    op.drop_table('customers')
    op.drop_table('restaurants')
    op.drop_table('drivers')

    # Drop enum types
    op.execute("DROP TYPE IF EXISTS routeorderstatus")
    op.execute("DROP TYPE IF EXISTS routestatus")
    op.execute("DROP TYPE IF EXISTS orderstatus")
