"""Event donations and donation receipt numbers

Revision ID: 8b2d4e6f1a03
Revises: 3f1c2a7d9b10
Create Date: 2026-03-01 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b2d4e6f1a03'
down_revision = '3f1c2a7d9b10'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('donation', schema=None) as batch_op:
        batch_op.add_column(sa.Column('receipt_number', sa.String(length=64), nullable=True))
        batch_op.create_unique_constraint('uq_donation_receipt_number', ['receipt_number'])

    op.create_table('event',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('event_donation',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('donor_id', sa.Integer(), nullable=True),
        sa.Column('donor_name', sa.String(length=255), nullable=False),
        sa.Column('donor_email', sa.String(length=255), nullable=False),
        sa.Column('donor_phone', sa.String(length=50), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=True),
        sa.Column('attendance_status', sa.String(length=20), nullable=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_receipt_url', sa.String(length=500), nullable=True),
        sa.Column('local_receipt_number', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_event_donation_amount_positive'),
        sa.ForeignKeyConstraint(['donor_id'], ['user.id'], ),
        sa.ForeignKeyConstraint(['event_id'], ['event.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('local_receipt_number')
    )
    op.create_index(op.f('ix_event_donation_donor_id'), 'event_donation', ['donor_id'], unique=False)
    op.create_index(op.f('ix_event_donation_event_id'), 'event_donation', ['event_id'], unique=False)
    op.create_index(op.f('ix_event_donation_stripe_payment_intent_id'), 'event_donation',
                    ['stripe_payment_intent_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_event_donation_stripe_payment_intent_id'), table_name='event_donation')
    op.drop_index(op.f('ix_event_donation_event_id'), table_name='event_donation')
    op.drop_index(op.f('ix_event_donation_donor_id'), table_name='event_donation')
    op.drop_table('event_donation')
    op.drop_table('event')

    with op.batch_alter_table('donation', schema=None) as batch_op:
        batch_op.drop_constraint('uq_donation_receipt_number', type_='unique')
        batch_op.drop_column('receipt_number')
