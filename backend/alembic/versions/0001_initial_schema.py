"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

# Enum columns store member names, matching sqlalchemy.Enum on the models
ENUMS = {
    'userrole': ('admin', 'teacher', 'student'),
    'enrollmentstatus': ('pending', 'approved', 'denied'),
    'quizkind': ('quiz', 'exam', 'assignment'),
    'questiontype': ('multiple_choice', 'true_false', 'identification', 'essay', 'enumeration', 'math'),
    'submissionstatus': ('submitted', 'graded'),
    'term': ('prelim', 'midterm', 'finals'),
    'auditactiontype': ('create', 'update', 'delete', 'login', 'logout', 'access', 'system'),
    'auditstatus': ('success', 'failure', 'warning'),
}


def _enum(name):
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _uuid_pk():
    return sa.Column('id', sa.String(length=36), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # Create custom types
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Accounts
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('role', _enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)

    op.create_table('refresh_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('revoked', sa.Boolean(), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_refresh_tokens_token', 'refresh_tokens', ['token'], unique=True)

    op.create_table('password_reset_otps',
        _uuid_pk(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('otp_code', sa.String(length=6), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_password_reset_otps_user_id', 'password_reset_otps', ['user_id'])
    op.create_index('ix_password_reset_otps_email', 'password_reset_otps', ['email'])

    op.create_table('students',
        _uuid_pk(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('student_number', sa.String(length=50), nullable=False),
        sa.Column('student_name', sa.String(length=255), nullable=False),
        sa.Column('course', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_students_student_number', 'students', ['student_number'], unique=True)

    op.create_table('teachers',
        _uuid_pk(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(length=50), nullable=False),
        sa.Column('teacher_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_teachers_employee_id', 'teachers', ['employee_id'], unique=True)

    # Classes and quizzes
    op.create_table('group_classes',
        _uuid_pk(),
        sa.Column('teacher_id', sa.String(length=36), nullable=False),
        sa.Column('class_name', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('class_start_time', sa.Time(), nullable=False),
        sa.Column('class_end_time', sa.Time(), nullable=False),
        sa.Column('teacher_name', sa.String(length=255), nullable=False),
        sa.Column('class_code', sa.String(length=12), nullable=False),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('auto_delete_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_group_classes_teacher_id', 'group_classes', ['teacher_id'])
    op.create_index('ix_group_classes_class_code', 'group_classes', ['class_code'], unique=True)

    op.create_table('class_students',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('status', _enum('enrollmentstatus'), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'student_id', name='uq_class_student'),
    )
    op.create_index('ix_class_students_class_id', 'class_students', ['class_id'])
    op.create_index('ix_class_students_student_id', 'class_students', ['student_id'])

    op.create_table('quizzes',
        _uuid_pk(),
        sa.Column('teacher_id', sa.String(length=36), nullable=False),
        sa.Column('type', _enum('quizkind'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quiz_type', sa.String(length=50), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('show_answer_key', sa.Boolean(), nullable=False),
        sa.Column('attachment_url', sa.String(length=500), nullable=True),
        sa.Column('attachment_name', sa.String(length=255), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('period', sa.String(length=50), nullable=True),
        sa.Column('school_name', sa.String(length=255), nullable=True),
        sa.Column('introduction', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quizzes_teacher_id', 'quizzes', ['teacher_id'])
    op.create_index('ix_quizzes_type', 'quizzes', ['type'])

    op.create_table('quiz_questions',
        _uuid_pk(),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('question_type', _enum('questiontype'), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('correct_answer', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('order_number', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'])

    op.create_table('class_materials',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('material_type', _enum('quizkind'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_class_materials_class_id', 'class_materials', ['class_id'])
    op.create_index('ix_class_materials_quiz_id', 'class_materials', ['quiz_id'])

    # Submissions
    op.create_table('student_submissions',
        _uuid_pk(),
        sa.Column('material_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('quiz_answers', sa.JSON(), nullable=True),
        sa.Column('assignment_response', sa.Text(), nullable=True),
        sa.Column('assignment_file_url', sa.String(length=500), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('max_score', sa.Float(), nullable=True),
        sa.Column('is_graded', sa.Boolean(), nullable=False),
        sa.Column('auto_graded', sa.Boolean(), nullable=False),
        sa.Column('status', _enum('submissionstatus'), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('graded_at', sa.DateTime(), nullable=True),
        sa.Column('graded_by', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['material_id'], ['class_materials.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['graded_by'], ['teachers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('material_id', 'student_id', name='uq_submission_material_student'),
    )
    op.create_index('ix_student_submissions_material_id', 'student_submissions', ['material_id'])
    op.create_index('ix_student_submissions_student_id', 'student_submissions', ['student_id'])

    op.create_table('quiz_attempts',
        _uuid_pk(),
        sa.Column('submission_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('max_score', sa.Float(), nullable=True),
        sa.Column('time_taken', sa.Integer(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['submission_id'], ['student_submissions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quiz_attempts_student_id', 'quiz_attempts', ['student_id'])
    op.create_index('ix_quiz_attempts_quiz_id', 'quiz_attempts', ['quiz_id'])

    op.create_table('quiz_progress',
        _uuid_pk(),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('material_id', sa.String(length=36), nullable=False),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['class_materials.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'material_id', name='uq_progress_student_material'),
    )

    # Grades
    op.create_table('grade_computation_settings',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('affective_percentage', sa.Float(), nullable=False),
        sa.Column('summative_percentage', sa.Float(), nullable=False),
        sa.Column('formative_percentage', sa.Float(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id'),
    )

    op.create_table('grade_manual_scores',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('term', _enum('term'), nullable=False),
        sa.Column('affective_score', sa.Float(), nullable=True),
        sa.Column('summative_score', sa.Float(), nullable=True),
        sa.Column('formative_score', sa.Float(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'student_id', 'term', name='uq_manual_score_term'),
    )
    op.create_index('ix_grade_manual_scores_class_id', 'grade_manual_scores', ['class_id'])
    op.create_index('ix_grade_manual_scores_student_id', 'grade_manual_scores', ['student_id'])

    op.create_table('student_exam_scores',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('prelim_score', sa.Float(), nullable=True),
        sa.Column('midterm_score', sa.Float(), nullable=True),
        sa.Column('finals_score', sa.Float(), nullable=True),
        sa.Column('max_prelim_score', sa.Float(), nullable=False),
        sa.Column('max_midterm_score', sa.Float(), nullable=False),
        sa.Column('max_finals_score', sa.Float(), nullable=False),
        sa.Column('portfolio_score', sa.Float(), nullable=True),
        sa.Column('graded_by', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['graded_by'], ['teachers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'student_id', name='uq_exam_score_student'),
    )
    op.create_index('ix_student_exam_scores_class_id', 'student_exam_scores', ['class_id'])
    op.create_index('ix_student_exam_scores_student_id', 'student_exam_scores', ['student_id'])

    # Messaging
    op.create_table('conversations',
        _uuid_pk(),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('admin_id', 'teacher_id', name='uq_conversation_pair'),
    )
    op.create_index('ix_conversations_admin_id', 'conversations', ['admin_id'])
    op.create_index('ix_conversations_teacher_id', 'conversations', ['teacher_id'])

    op.create_table('messages',
        _uuid_pk(),
        sa.Column('conversation_id', sa.String(length=36), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])

    op.create_table('student_teacher_messages',
        _uuid_pk(),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('teacher_id', sa.String(length=36), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['class_id'], ['group_classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_student_teacher_messages_class_id', 'student_teacher_messages', ['class_id'])
    op.create_index('ix_student_teacher_messages_student_id', 'student_teacher_messages', ['student_id'])
    op.create_index('ix_student_teacher_messages_teacher_id', 'student_teacher_messages', ['teacher_id'])

    # Audit trail
    op.create_table('audit_logs',
        _uuid_pk(),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('user_name', sa.String(length=255), nullable=True),
        sa.Column('user_role', sa.String(length=20), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('action_type', _enum('auditactiontype'), nullable=False),
        sa.Column('resource_type', sa.String(length=100), nullable=True),
        sa.Column('resource_id', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('status', _enum('auditstatus'), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    # Dropping a table drops its indexes
    for table in (
        'audit_logs',
        'student_teacher_messages',
        'messages',
        'conversations',
        'student_exam_scores',
        'grade_manual_scores',
        'grade_computation_settings',
        'quiz_progress',
        'quiz_attempts',
        'student_submissions',
        'class_materials',
        'quiz_questions',
        'quizzes',
        'class_students',
        'group_classes',
        'teachers',
        'students',
        'password_reset_otps',
        'refresh_tokens',
        'users',
    ):
        op.drop_table(table)

    # Drop custom types
    for name in reversed(list(ENUMS)):
        op.execute(f'DROP TYPE IF EXISTS {name}')
