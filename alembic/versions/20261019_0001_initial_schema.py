"""initial tuition desk schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'teachers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='teacher'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_teachers_id', 'teachers', ['id'])
    op.create_index('ix_teachers_email', 'teachers', ['email'], unique=True)
    op.create_index('ix_teachers_role', 'teachers', ['role'])

    op.create_table(
        'batches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('year', sa.String(length=20), nullable=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_batches_id', 'batches', ['id'])
    op.create_index('ix_batches_teacher_id', 'batches', ['teacher_id'])
    op.create_index('ix_batches_created_at', 'batches', ['created_at'])

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=40), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('institution_name', sa.String(length=180), nullable=False),
        sa.Column('class_name', sa.String(length=40), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=False),
        sa.Column('batch_id', sa.Integer(), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('guardian_name', sa.String(length=120), nullable=True),
        sa.Column('guardian_phone', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'student_id', name='uq_students_teacher_student_id'),
    )
    op.create_index('ix_students_id', 'students', ['id'])
    op.create_index('ix_students_student_id', 'students', ['student_id'])
    op.create_index('ix_students_batch_id', 'students', ['batch_id'])
    op.create_index('ix_students_teacher_id', 'students', ['teacher_id'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])
    op.create_index('ix_students_teacher_created', 'students', ['teacher_id', 'created_at'])

    op.create_table(
        'student_id_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('short_code', sa.String(length=40), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'short_code', name='uq_student_id_sequences_teacher_code'),
    )
    op.create_index('ix_student_id_sequences_id', 'student_id_sequences', ['id'])
    op.create_index('ix_student_id_sequences_teacher_id', 'student_id_sequences', ['teacher_id'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('course_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('course_duration', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('course_for', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])
    op.create_index('ix_courses_is_active', 'courses', ['is_active'])
    op.create_index('ix_courses_teacher_id', 'courses', ['teacher_id'])
    op.create_index('ix_courses_created_at', 'courses', ['created_at'])

    op.create_table(
        'routines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('batch_id', sa.Integer(), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('schedule', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_routines_id', 'routines', ['id'])
    op.create_index('ix_routines_course_id', 'routines', ['course_id'])
    op.create_index('ix_routines_batch_id', 'routines', ['batch_id'])
    op.create_index('ix_routines_is_active', 'routines', ['is_active'])
    op.create_index('ix_routines_created_at', 'routines', ['created_at'])

    op.create_table(
        'course_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('enrolled_date', sa.DateTime(), nullable=False),
        sa.Column('valid_till', sa.DateTime(), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('student_id', 'course_id', name='uq_course_subscriptions_student_course'),
    )
    op.create_index('ix_course_subscriptions_id', 'course_subscriptions', ['id'])
    op.create_index('ix_course_subscriptions_student_id', 'course_subscriptions', ['student_id'])
    op.create_index('ix_course_subscriptions_course_id', 'course_subscriptions', ['course_id'])
    op.create_index('ix_course_subscriptions_enrolled_date', 'course_subscriptions', ['enrolled_date'])
    op.create_index('ix_course_subscriptions_created_at', 'course_subscriptions', ['created_at'])
    op.create_index('ix_course_subscriptions_status', 'course_subscriptions', ['payment_status', 'is_active'])

    op.create_table(
        'attendances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('student_id', 'attendance_date', name='uq_attendances_student_date'),
    )
    op.create_index('ix_attendances_id', 'attendances', ['id'])
    op.create_index('ix_attendances_student_id', 'attendances', ['student_id'])
    op.create_index('ix_attendances_date_status', 'attendances', ['attendance_date', 'status'])

    op.create_table(
        'results',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='SET NULL'), nullable=True),
        sa.Column('exam_name', sa.String(length=120), nullable=False),
        sa.Column('marks_obtained', sa.Float(), nullable=False),
        sa.Column('total_marks', sa.Float(), nullable=False, server_default='100'),
        sa.Column('exam_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_results_id', 'results', ['id'])
    op.create_index('ix_results_student_id', 'results', ['student_id'])
    op.create_index('ix_results_course_id', 'results', ['course_id'])

    op.create_table(
        'feedbacks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('feedback_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_feedbacks_id', 'feedbacks', ['id'])
    op.create_index('ix_feedbacks_student_id', 'feedbacks', ['student_id'])
    op.create_index('ix_feedbacks_feedback_date', 'feedbacks', ['feedback_date'])


def downgrade() -> None:
    op.drop_index('ix_feedbacks_feedback_date', table_name='feedbacks')
    op.drop_index('ix_feedbacks_student_id', table_name='feedbacks')
    op.drop_index('ix_feedbacks_id', table_name='feedbacks')
    op.drop_table('feedbacks')

    op.drop_index('ix_results_course_id', table_name='results')
    op.drop_index('ix_results_student_id', table_name='results')
    op.drop_index('ix_results_id', table_name='results')
    op.drop_table('results')

    op.drop_index('ix_attendances_date_status', table_name='attendances')
    op.drop_index('ix_attendances_student_id', table_name='attendances')
    op.drop_index('ix_attendances_id', table_name='attendances')
    op.drop_table('attendances')

    op.drop_index('ix_course_subscriptions_status', table_name='course_subscriptions')
    op.drop_index('ix_course_subscriptions_created_at', table_name='course_subscriptions')
    op.drop_index('ix_course_subscriptions_enrolled_date', table_name='course_subscriptions')
    op.drop_index('ix_course_subscriptions_course_id', table_name='course_subscriptions')
    op.drop_index('ix_course_subscriptions_student_id', table_name='course_subscriptions')
    op.drop_index('ix_course_subscriptions_id', table_name='course_subscriptions')
    op.drop_table('course_subscriptions')

    op.drop_index('ix_routines_created_at', table_name='routines')
    op.drop_index('ix_routines_is_active', table_name='routines')
    op.drop_index('ix_routines_batch_id', table_name='routines')
    op.drop_index('ix_routines_course_id', table_name='routines')
    op.drop_index('ix_routines_id', table_name='routines')
    op.drop_table('routines')

    op.drop_index('ix_courses_created_at', table_name='courses')
    op.drop_index('ix_courses_teacher_id', table_name='courses')
    op.drop_index('ix_courses_is_active', table_name='courses')
    op.drop_index('ix_courses_id', table_name='courses')
    op.drop_table('courses')

    op.drop_index('ix_student_id_sequences_teacher_id', table_name='student_id_sequences')
    op.drop_index('ix_student_id_sequences_id', table_name='student_id_sequences')
    op.drop_table('student_id_sequences')

    op.drop_index('ix_students_teacher_created', table_name='students')
    op.drop_index('ix_students_created_at', table_name='students')
    op.drop_index('ix_students_teacher_id', table_name='students')
    op.drop_index('ix_students_batch_id', table_name='students')
    op.drop_index('ix_students_student_id', table_name='students')
    op.drop_index('ix_students_id', table_name='students')
    op.drop_table('students')

    op.drop_index('ix_batches_created_at', table_name='batches')
    op.drop_index('ix_batches_teacher_id', table_name='batches')
    op.drop_index('ix_batches_id', table_name='batches')
    op.drop_table('batches')

    op.drop_index('ix_teachers_role', table_name='teachers')
    op.drop_index('ix_teachers_email', table_name='teachers')
    op.drop_index('ix_teachers_id', table_name='teachers')
    op.drop_table('teachers')
