"""Initial schema - devices, telemetry and alerts tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create devices table
    op.create_table(
        'devices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('firmware', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_devices_device_id', 'devices', ['device_id'], unique=True)
    op.create_index('ix_devices_location', 'devices', ['location'], unique=False)
    op.create_index('ix_devices_last_seen', 'devices', ['last_seen'], unique=False)

    # Create telemetry table (device_id is a soft reference, no FK)
    op.create_table(
        'telemetry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=100), nullable=False),
        sa.Column('sensor_type', sa.String(length=20), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('location', sa.String(length=100), nullable=False),
        sa.Column('signal_strength', sa.Integer(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('source_address', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_telemetry_timestamp', 'telemetry', ['timestamp'], unique=False)
    op.create_index('ix_telemetry_device_id_timestamp', 'telemetry', ['device_id', 'timestamp'], unique=False)
    op.create_index('ix_telemetry_sensor_type_timestamp', 'telemetry', ['sensor_type', 'timestamp'], unique=False)

    # Create alerts table
    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=100), nullable=False),
        sa.Column('sensor_type', sa.String(length=20), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('message', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('threshold', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False, server_default='false'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alerts_timestamp', 'alerts', ['timestamp'], unique=False)
    op.create_index('ix_alerts_acknowledged', 'alerts', ['acknowledged'], unique=False)
    op.create_index('ix_alerts_device_id_timestamp', 'alerts', ['device_id', 'timestamp'], unique=False)
    op.create_index('ix_alerts_severity_timestamp', 'alerts', ['severity', 'timestamp'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_alerts_severity_timestamp', table_name='alerts')
    op.drop_index('ix_alerts_device_id_timestamp', table_name='alerts')
    op.drop_index('ix_alerts_acknowledged', table_name='alerts')
    op.drop_index('ix_alerts_timestamp', table_name='alerts')
    op.drop_table('alerts')
    op.drop_index('ix_telemetry_sensor_type_timestamp', table_name='telemetry')
    op.drop_index('ix_telemetry_device_id_timestamp', table_name='telemetry')
    op.drop_index('ix_telemetry_timestamp', table_name='telemetry')
    op.drop_table('telemetry')
    op.drop_index('ix_devices_last_seen', table_name='devices')
    op.drop_index('ix_devices_location', table_name='devices')
    op.drop_index('ix_devices_device_id', table_name='devices')
    op.drop_table('devices')
