"""Initial schema

Revision ID: 001
Revises:
Create Date: 2024-06-10 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Restaurants and their places-provider locations
    op.create_table(
        'restaurants',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('thumbnail_url', sa.Text(), server_default='', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_restaurants_name', 'restaurants', ['name'])

    op.create_table(
        'restaurant_locations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('restaurant_id', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), server_default='', nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # Menu categories and item documents
    op.create_table(
        'menu_categories',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('restaurant_id', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('idx', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'menu_items',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('category_id', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['menu_categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # User profiles (allergens, preferred location)
    op.create_table(
        'users',
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('profile', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('user_id')
    )

    # Saved and created menus
    op.create_table(
        'user_menus',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False),
        sa.Column('restaurant_name', sa.Text(), nullable=False),
        sa.Column('dishes', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint("kind IN ('saved', 'created')", name='user_menus_kind_check'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_menus_user_kind', 'user_menus', ['user_id', 'kind'])


def downgrade() -> None:
    op.drop_index('ix_user_menus_user_kind', table_name='user_menus')
    op.drop_table('user_menus')
    op.drop_table('users')
    op.drop_table('menu_items')
    op.drop_table('menu_categories')
    op.drop_table('restaurant_locations')
    op.drop_index('ix_restaurants_name', table_name='restaurants')
    op.drop_table('restaurants')
