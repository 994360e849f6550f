"""Initial schema: users, products, options, option values, variants

Revision ID: 0001_initial_variant_model
Revises:
Create Date: 2026-10-17

Compatible with both SQLite and PostgreSQL:
- CURRENT_TIMESTAMP instead of now()
- ENUMs stored as VARCHAR (native_enum=False in models)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_variant_model'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables of the variant model."""

    # Users table
    op.create_table('users',
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), server_default='CUSTOMER', nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='1', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    # Product table
    op.create_table('product',
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('base_sku', sa.String(length=100), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('short_description', sa.Text(), nullable=True),
        sa.Column('long_description', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('uq_product_base_sku', 'product', ['base_sku'], unique=True)
    op.create_index('idx_product_seller_id', 'product', ['seller_id'], unique=False)
    op.create_index('idx_product_category_id', 'product', ['category_id'], unique=False)

    # Product option table
    op.create_table('product_option',
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'name', name='uq_product_option_product_name')
    )
    op.create_index('idx_product_option_product_id', 'product_option', ['product_id'], unique=False)

    # Product option value table
    op.create_table('product_option_value',
        sa.Column('option_id', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('color_code', sa.String(length=7), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['option_id'], ['product_option.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('option_id', 'value', name='uq_product_option_value_option_value')
    )
    op.create_index('idx_product_option_value_option_id', 'product_option_value', ['option_id'], unique=False)

    # Product variant table
    op.create_table('product_variant',
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('allow_purchase', sa.Boolean(), server_default='1', nullable=False),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('is_popular', sa.Boolean(), server_default='0', nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('uq_product_variant_sku', 'product_variant', ['sku'], unique=True)
    op.create_index('idx_product_variant_product_id', 'product_variant', ['product_id'], unique=False)
    op.create_index('idx_product_variant_product_default', 'product_variant', ['product_id', 'is_default'], unique=False)

    # Variant <-> option value links
    op.create_table('variant_option_value',
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('option_id', sa.Integer(), nullable=False),
        sa.Column('option_value_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variant.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['option_id'], ['product_option.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['option_value_id'], ['product_option_value.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('variant_id', 'option_id', name='uq_variant_option_value_variant_option')
    )
    op.create_index('idx_variant_option_value_variant_id', 'variant_option_value', ['variant_id'], unique=False)
    op.create_index('idx_variant_option_value_option_id', 'variant_option_value', ['option_id'], unique=False)
    op.create_index('idx_variant_option_value_option_value_id', 'variant_option_value', ['option_value_id'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('variant_option_value')
    op.drop_table('product_variant')
    op.drop_table('product_option_value')
    op.drop_table('product_option')
    op.drop_table('product')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
