"""initial school schema

Revision ID: 4b1e0c7a9d21
Revises:
Create Date: 2025-06-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "4b1e0c7a9d21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'classes',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('section', sa.String(length=20), nullable=False, server_default=''),
    )

    op.create_table(
        'students',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('student_name', sa.String(length=150), nullable=False),
        sa.Column('father_name', sa.String(length=150), nullable=False),
        sa.Column('mother_name', sa.String(length=150), nullable=True),
        sa.Column('father_mobile', sa.String(length=20), nullable=True),
        sa.Column('mother_mobile', sa.String(length=20), nullable=True),
        sa.Column('student_photo_url', sa.Text(), nullable=True),
        sa.Column('father_photo_url', sa.Text(), nullable=True),
        sa.Column('mother_photo_url', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('blood_group', sa.String(length=5), nullable=True),
        sa.Column('emergency_contact', sa.String(length=20), nullable=True),
        sa.Column('previous_school', sa.String(length=200), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('fees_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('transport_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('medical_conditions', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_students_class_id', 'students', ['class_id'])
    op.create_index('ix_students_student_name', 'students', ['student_name'])

    op.create_table(
        'fee_payments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount_received', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('balance_remaining', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('receipt_url', sa.String(length=120), nullable=False),
        sa.Column('has_updates', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('fee_month', sa.Integer(), nullable=True),
        sa.Column('fee_year', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('receipt_url'),
    )
    op.create_index('ix_fee_payments_student_id', 'fee_payments', ['student_id'])
    op.create_index('ix_fee_payments_payment_date', 'fee_payments', ['payment_date'])
    op.create_index('idx_fee_payments_month_year', 'fee_payments', ['fee_month', 'fee_year'])
    op.create_index('idx_fee_payments_has_updates', 'fee_payments', ['has_updates'])

    op.create_table(
        'fee_history_updates',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('fee_payment_id', sa.String(length=36), sa.ForeignKey('fee_payments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_name', sa.String(length=64), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('updated_by', sa.String(length=120), nullable=False, server_default='system'),
        sa.Column('update_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_fee_history_updates_fee_payment_id', 'fee_history_updates', ['fee_payment_id'])
    op.create_index('ix_fee_history_updates_created_at', 'fee_history_updates', ['created_at'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.String(length=36), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=120), nullable=True),
        sa.Column('last_modified_by', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
    )
    op.create_index('ix_attendance_student_id', 'attendance', ['student_id'])
    op.create_index('ix_attendance_date', 'attendance', ['date'])

    op.create_table(
        'attendance_messages',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('message_content', sa.Text(), nullable=False),
        sa.Column('recipient_type', sa.String(length=10), nullable=False),
        sa.Column('recipient_number', sa.String(length=20), nullable=False),
        sa.Column('delivery_status', sa.String(length=10), nullable=False, server_default='pending'),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_attendance_messages_student_id', 'attendance_messages', ['student_id'])
    op.create_index('ix_attendance_messages_date', 'attendance_messages', ['date'])

    op.create_table(
        'birthday_messages',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('message_content', sa.Text(), nullable=False),
        sa.Column('sent_to', sa.String(length=10), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_birthday_messages_student_id', 'birthday_messages', ['student_id'])


def downgrade():
    op.drop_index('ix_birthday_messages_student_id', table_name='birthday_messages')
    op.drop_table('birthday_messages')
    op.drop_index('ix_attendance_messages_date', table_name='attendance_messages')
    op.drop_index('ix_attendance_messages_student_id', table_name='attendance_messages')
    op.drop_table('attendance_messages')
    op.drop_index('ix_attendance_date', table_name='attendance')
    op.drop_index('ix_attendance_student_id', table_name='attendance')
    op.drop_table('attendance')
    op.drop_index('ix_fee_history_updates_created_at', table_name='fee_history_updates')
    op.drop_index('ix_fee_history_updates_fee_payment_id', table_name='fee_history_updates')
    op.drop_table('fee_history_updates')
    op.drop_index('idx_fee_payments_has_updates', table_name='fee_payments')
    op.drop_index('idx_fee_payments_month_year', table_name='fee_payments')
    op.drop_index('ix_fee_payments_payment_date', table_name='fee_payments')
    op.drop_index('ix_fee_payments_student_id', table_name='fee_payments')
    op.drop_table('fee_payments')
    op.drop_index('ix_students_student_name', table_name='students')
    op.drop_index('ix_students_class_id', table_name='students')
    op.drop_table('students')
    op.drop_table('classes')
