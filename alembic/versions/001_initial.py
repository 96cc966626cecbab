"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # Create contact_submissions table
    op.create_table(
        'contact_submissions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=False),
        sa.Column('selected_service', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('contacted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('contacted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_contact_submissions_id', 'contact_submissions', ['id'])
    op.create_index('ix_contact_submissions_phone_number', 'contact_submissions', ['phone_number'])
    op.create_index('ix_contact_submissions_created_at', 'contact_submissions', ['created_at'])

    # Create admin_users table
    op.create_table(
        'admin_users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'STAFF', name='adminrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_admin_users_id', 'admin_users', ['id'])
    op.create_index('ix_admin_users_email', 'admin_users', ['email'], unique=True)

def downgrade():
    op.drop_table('admin_users')
    op.drop_table('contact_submissions')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS adminrole')
