"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create ENUM types
    op.execute("""
        CREATE TYPE policy_category AS ENUM (
            'ELIGIBILITY', 'PRICING', 'CREDIT_LIMIT',
            'DOCUMENT_REQUIREMENT', 'WORKFLOW', 'RISK_SCORING'
        )
    """)
    op.execute("CREATE TYPE policy_status AS ENUM ('DRAFT', 'ACTIVE', 'INACTIVE', 'ARCHIVED')")
    op.execute("""
        CREATE TYPE loan_type AS ENUM (
            'PERSONAL_LOAN', 'HOME_LOAN', 'VEHICLE_LOAN', 'EDUCATION_LOAN',
            'GOLD_LOAN', 'BUSINESS_LOAN', 'KCC', 'LAP', 'ALL'
        )
    """)

    # Create policies table (one row per policy version)
    op.create_table(
        'policies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('policy_code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', postgresql.ENUM(name='policy_category', create_type=False), nullable=False),
        sa.Column('loan_type', postgresql.ENUM(name='loan_type', create_type=False), nullable=True),
        sa.Column('status', postgresql.ENUM(name='policy_status', create_type=False), nullable=False, server_default='DRAFT'),
        sa.Column('version_number', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('previous_version_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('priority', sa.Integer(), nullable=False, server_default=sa.text('100')),
        sa.Column('effective_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('effective_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tags', postgresql.ARRAY(sa.String(length=50)), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('modified_by', sa.String(length=100), nullable=True),
        sa.UniqueConstraint('policy_code', 'version_number', name='uq_policies_code_version'),
    )
    op.create_index('ix_policies_policy_code', 'policies', ['policy_code'])
    op.create_index('ix_policies_name', 'policies', ['name'])
    op.create_index('ix_policies_category', 'policies', ['category'])
    op.create_index('ix_policies_loan_type', 'policies', ['loan_type'])
    op.create_index('ix_policies_status', 'policies', ['status'])
    op.create_index('ix_policies_status_loan_type', 'policies', ['status', 'loan_type'])


def downgrade() -> None:
    op.drop_index('ix_policies_status_loan_type', table_name='policies')
    op.drop_index('ix_policies_status', table_name='policies')
    op.drop_index('ix_policies_loan_type', table_name='policies')
    op.drop_index('ix_policies_category', table_name='policies')
    op.drop_index('ix_policies_name', table_name='policies')
    op.drop_index('ix_policies_policy_code', table_name='policies')
    op.drop_table('policies')

    # Drop ENUM types
    op.execute('DROP TYPE loan_type')
    op.execute('DROP TYPE policy_status')
    op.execute('DROP TYPE policy_category')
