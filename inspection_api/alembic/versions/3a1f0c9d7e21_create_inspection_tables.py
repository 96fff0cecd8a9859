"""create_inspection_tables

Revision ID: 3a1f0c9d7e21
Revises:
Create Date: 2026-10-19 09:12:40.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3a1f0c9d7e21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    op.create_table('vehicles',
    sa.Column('id', sa.String(length=50), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vehicles_id'), 'vehicles', ['id'], unique=False)

    op.create_table('interventions',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('vehicle_id', sa.String(length=50), nullable=False),
    sa.Column('inspection_id', sa.String(length=36), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('priority', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_interventions_vehicle_id'), 'interventions', ['vehicle_id'], unique=False)
    op.create_index(op.f('ix_interventions_inspection_id'), 'interventions', ['inspection_id'], unique=False)
    op.create_index(op.f('ix_interventions_status'), 'interventions', ['status'], unique=False)

    op.create_table('vehicle_inspections',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('vehicle_id', sa.String(length=50), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('mileage', sa.Integer(), nullable=False),
    sa.Column('fuel_levels', _JSON, nullable=True),
    sa.Column('defects', _JSON, nullable=False),
    sa.Column('inspection_type', sa.String(length=20), nullable=False),
    sa.Column('driver_id', sa.String(length=50), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('reviewed_by', sa.String(length=50), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('review_notes', sa.Text(), nullable=True),
    sa.Column('intervention_id', sa.String(length=36), nullable=True),
    sa.Column('odometer_anomaly', sa.Boolean(), nullable=False),
    sa.Column('odometer_reason', sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(['intervention_id'], ['interventions.id'], ),
    sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vehicle_inspections_vehicle_id'), 'vehicle_inspections', ['vehicle_id'], unique=False)
    op.create_index(op.f('ix_vehicle_inspections_created_at'), 'vehicle_inspections', ['created_at'], unique=False)
    op.create_index(op.f('ix_vehicle_inspections_status'), 'vehicle_inspections', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_vehicle_inspections_status'), table_name='vehicle_inspections')
    op.drop_index(op.f('ix_vehicle_inspections_created_at'), table_name='vehicle_inspections')
    op.drop_index(op.f('ix_vehicle_inspections_vehicle_id'), table_name='vehicle_inspections')
    op.drop_table('vehicle_inspections')
    op.drop_index(op.f('ix_interventions_status'), table_name='interventions')
    op.drop_index(op.f('ix_interventions_inspection_id'), table_name='interventions')
    op.drop_index(op.f('ix_interventions_vehicle_id'), table_name='interventions')
    op.drop_table('interventions')
    op.drop_index(op.f('ix_vehicles_id'), table_name='vehicles')
    op.drop_table('vehicles')
