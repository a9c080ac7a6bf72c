"""create kennel board tables

Revision ID: a3c91e5d7b20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a3c91e5d7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('kennels',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(length=120), nullable=False),
    sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
    sa.Column('building', sa.String(length=120), nullable=True),
    sa.Column('floor', sa.String(length=120), nullable=True),
    sa.Column('kennel_type', sa.String(length=20), nullable=False, server_default='KENNEL'),
    sa.Column('size', sa.String(length=20), nullable=True),
    sa.Column('special_handling', sa.Boolean(), nullable=False, server_default='false'),
    sa.Column('amenities', sa.JSON(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
    sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('capacity >= 1'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_kennels_location', 'kennels', ['building', 'floor'], unique=False)
    op.create_index('idx_kennels_archived', 'kennels', ['archived_at'], unique=False)

    op.create_table('bookings',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
    sa.Column('pet_name', sa.String(length=120), nullable=True),
    sa.Column('owner_name', sa.String(length=200), nullable=True),
    sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint(
        "status IN ('PENDING', 'CONFIRMED', 'CHECKED_IN', 'CHECKED_OUT', 'CANCELLED')",
        name='check_booking_status'
    ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_bookings_status', 'bookings', ['status'], unique=False)

    op.create_table('booking_segments',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('booking_id', sa.String(length=36), nullable=False),
    sa.Column('kennel_id', sa.String(length=36), nullable=False),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('start_date <= end_date', name='check_segment_range'),
    sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['kennel_id'], ['kennels.id'], ondelete='RESTRICT'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_segments_kennel_range', 'booking_segments', ['kennel_id', 'start_date', 'end_date'], unique=False)
    op.create_index('idx_segments_booking', 'booking_segments', ['booking_id'], unique=False)

    op.create_table('engine_operations',
    sa.Column('operation_id', sa.String(length=100), nullable=False),
    sa.Column('kind', sa.String(length=20), nullable=False),
    sa.Column('segment_id', sa.String(length=36), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('operation_id')
    )
    op.create_index('idx_engine_operations_created_at', 'engine_operations', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_engine_operations_created_at', table_name='engine_operations')
    op.drop_table('engine_operations')

    op.drop_index('idx_segments_booking', table_name='booking_segments')
    op.drop_index('idx_segments_kennel_range', table_name='booking_segments')
    op.drop_table('booking_segments')

    op.drop_index('idx_bookings_status', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('idx_kennels_archived', table_name='kennels')
    op.drop_index('idx_kennels_location', table_name='kennels')
    op.drop_table('kennels')
