"""Initial donations schema

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-01-10 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a7d9b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('role',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=80), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_table('user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('password', sa.String(length=255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True),
        sa.Column('fs_uniquifier', sa.String(length=255), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('fs_uniquifier')
    )
    op.create_table('roles_users',
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('role_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['role_id'], ['role.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], )
    )
    op.create_table('child',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('monthly_amount', sa.Integer(), nullable=True),
        sa.Column('is_sponsored', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('donation',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('donor_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('donation_type', sa.String(length=20), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), nullable=True),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=True),
        sa.Column('recurring_interval', sa.String(length=20), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('original_currency', sa.String(length=3), nullable=True),
        sa.Column('original_amount', sa.String(length=32), nullable=True),
        sa.Column('stripe_reference', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('donor_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_donation_amount_positive'),
        sa.ForeignKeyConstraint(['donor_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_donation_stripe_reference'), 'donation', ['stripe_reference'], unique=False)
    op.create_table('sponsorship',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('donor_id', sa.Integer(), nullable=True),
        sa.Column('sponsor_name', sa.String(length=255), nullable=False),
        sa.Column('sponsor_email', sa.String(length=255), nullable=False),
        sa.Column('sponsor_phone', sa.String(length=50), nullable=True),
        sa.Column('monthly_amount', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_receipt_url', sa.String(length=500), nullable=True),
        sa.Column('local_receipt_number', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['child_id'], ['child.id'], ),
        sa.ForeignKeyConstraint(['donor_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('local_receipt_number')
    )
    op.create_index(op.f('ix_sponsorship_payment_status'), 'sponsorship', ['payment_status'], unique=False)
    op.create_index(op.f('ix_sponsorship_stripe_payment_intent_id'), 'sponsorship', ['stripe_payment_intent_id'], unique=False)
    op.create_table('processed_payment',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=True),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )


def downgrade():
    op.drop_table('processed_payment')
    op.drop_index(op.f('ix_sponsorship_stripe_payment_intent_id'), table_name='sponsorship')
    op.drop_index(op.f('ix_sponsorship_payment_status'), table_name='sponsorship')
    op.drop_table('sponsorship')
    op.drop_index(op.f('ix_donation_stripe_reference'), table_name='donation')
    op.drop_table('donation')
    op.drop_table('child')
    op.drop_table('roles_users')
    op.drop_table('user')
    op.drop_table('role')
