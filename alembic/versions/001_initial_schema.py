"""Create manufacturers, components, pinouts, datasheet_cache and llm_prompts tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table('manufacturers',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(255), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )

    # Shared extraction results, one row per normalized datasheet URL
    op.create_table('datasheet_cache',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('datasheet_url', sa.String(2048), nullable=False),
    sa.Column('status', sa.String(10), nullable=False, server_default='pending'),
    sa.Column('raw_text', sa.Text(), nullable=True),
    sa.Column('page_count', sa.Integer(), nullable=True),
    sa.Column('text_length', sa.Integer(), nullable=True),
    sa.Column('pinouts_by_package', JSONB, nullable=True),
    sa.Column('specs', JSONB, nullable=True),
    sa.Column('extraction_model', sa.String(100), nullable=True),
    sa.Column('extraction_tokens', sa.Integer(), nullable=True),
    sa.Column('extraction_cost', sa.Float(), nullable=True),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('expires_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint(
        "status IN ('pending', 'processing', 'completed', 'failed')",
        name='ck_datasheet_cache_status',
    ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('datasheet_url')
    )
    op.create_index('ix_datasheet_cache_status', 'datasheet_cache', ['status'])
    op.create_index('ix_datasheet_cache_expires_at', 'datasheet_cache', ['expires_at'])

    op.create_table('components',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('mpn', sa.String(255), nullable=False),
    sa.Column('manufacturer_id', sa.Integer(), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('datasheet_url', sa.String(2048), nullable=True),
    sa.Column('lifecycle_status', sa.String(8), nullable=False, server_default='Unknown'),
    sa.Column('package_raw', sa.String(255), nullable=True),
    sa.Column('package_normalized', sa.String(100), nullable=True),
    sa.Column('package_source', sa.String(15), nullable=True),
    sa.Column('pin_count', sa.Integer(), nullable=True),
    sa.Column('mounting_style', sa.String(3), nullable=True),
    sa.Column('specs', JSONB, nullable=True),
    sa.Column('data_sources', postgresql.ARRAY(sa.Text()).with_variant(sa.JSON(), "sqlite"), nullable=True),
    sa.Column('confidence_score', sa.Float(), nullable=True),
    sa.Column('datasheet_cache_id', sa.Integer(), nullable=True),
    sa.Column('mpn_suffix', sa.String(20), nullable=True),
    sa.Column('pinout_source', sa.String(17), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('pin_count > 0 OR pin_count IS NULL', name='ck_components_pin_count_positive'),
    sa.CheckConstraint(
        'confidence_score IS NULL OR (confidence_score >= 0 AND confidence_score <= 1)',
        name='ck_components_confidence_range',
    ),
    sa.ForeignKeyConstraint(['manufacturer_id'], ['manufacturers.id'], ),
    sa.ForeignKeyConstraint(['datasheet_cache_id'], ['datasheet_cache.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('mpn', 'manufacturer_id', name='uq_components_mpn_manufacturer')
    )
    op.create_index('ix_components_mpn', 'components', ['mpn'])
    op.create_index('ix_components_package_normalized', 'components', ['package_normalized'])
    op.create_index('ix_components_datasheet_cache_id', 'components', ['datasheet_cache_id'])

    op.create_table('pinouts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('component_id', sa.Integer(), nullable=False),
    sa.Column('pin_number', sa.Integer(), nullable=False),
    sa.Column('pin_name', sa.String(100), nullable=False),
    sa.Column('pin_function', sa.String(13), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('source', sa.String(50), nullable=True),
    sa.Column('confidence', sa.Float(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('pin_number > 0', name='ck_pinouts_pin_number_positive'),
    sa.CheckConstraint(
        'confidence IS NULL OR (confidence >= 0 AND confidence <= 1)',
        name='ck_pinouts_confidence_range',
    ),
    sa.ForeignKeyConstraint(['component_id'], ['components.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('component_id', 'pin_number', name='uq_pinouts_component_pin')
    )
    op.create_index('ix_pinouts_component_id', 'pinouts', ['component_id'])

    op.create_table('llm_prompts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(100), nullable=False),
    sa.Column('display_name', sa.String(255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('category', sa.String(50), nullable=False, server_default='extraction'),
    sa.Column('system_prompt', sa.Text(), nullable=False),
    sa.Column('user_prompt_template', sa.Text(), nullable=False),
    sa.Column('model', sa.String(100), nullable=True),
    sa.Column('temperature', sa.Float(), nullable=True),
    sa.Column('max_tokens', sa.Integer(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )


def downgrade() -> None:
    op.drop_table('llm_prompts')
    op.drop_index('ix_pinouts_component_id', table_name='pinouts')
    op.drop_table('pinouts')
    op.drop_index('ix_components_datasheet_cache_id', table_name='components')
    op.drop_index('ix_components_package_normalized', table_name='components')
    op.drop_index('ix_components_mpn', table_name='components')
    op.drop_table('components')
    op.drop_index('ix_datasheet_cache_expires_at', table_name='datasheet_cache')
    op.drop_index('ix_datasheet_cache_status', table_name='datasheet_cache')
    op.drop_table('datasheet_cache')
    op.drop_table('manufacturers')
