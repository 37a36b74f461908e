"""Test cases for SQLAlchemy models."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from erms.database import utcnow
from erms.models import (
    UserRole, Student, GroupClass, ClassEnrollment, EnrollmentStatus,
    QuizQuestion, QuestionType, StudentSubmission, RefreshToken, PasswordResetOTP,
    GradeManualScore, Term,
)

from conftest import PASSWORD, create_quiz, create_student, create_user, enroll


class TestUserModel:
    """Test cases for User model."""

    def test_password_is_hashed(self, db_session):
        user = create_user(db_session, "registrar@school.edu", UserRole.admin)

        assert user.hashed_password != PASSWORD
        assert user.verify_password(PASSWORD)
        assert not user.verify_password("wrong")

    def test_user_unique_email(self, db_session):
        create_user(db_session, "duplicate@school.edu", UserRole.teacher)

        with pytest.raises(IntegrityError):
            create_user(db_session, "duplicate@school.edu", UserRole.student)

    def test_is_locked(self, db_session, student):
        user = student.user
        assert not user.is_locked()

        user.locked_until = utcnow() + timedelta(minutes=5)
        assert user.is_locked()

        user.locked_until = utcnow() - timedelta(minutes=5)
        assert not user.is_locked()

    def test_display_name(self, db_session, student, teacher):
        assert student.user.display_name == "Juan Dela Cruz"
        assert teacher.user.display_name == "Maria Santos"
        assert create_user(db_session, "root@school.edu", UserRole.admin).display_name == "Admin"

    def test_user_repr(self, admin_user):
        repr_str = repr(admin_user)
        assert "User" in repr_str
        assert "admin@school.edu" in repr_str

    def test_deleting_user_removes_profile(self, db_session, group_class, student, enrollment):
        db_session.delete(student.user)
        db_session.commit()

        assert db_session.query(Student).count() == 0
        assert db_session.query(ClassEnrollment).count() == 0


class TestTokens:
    """Refresh tokens and password reset codes."""

    def test_refresh_token_generation(self):
        token = RefreshToken.generate_token()

        assert len(token) == 64
        assert token.isalnum()
        assert token != RefreshToken.generate_token()

    def test_refresh_token_expiry(self):
        assert RefreshToken(expires_at=utcnow() - timedelta(seconds=1)).is_expired()
        assert not RefreshToken(expires_at=utcnow() + timedelta(days=1)).is_expired()

    def test_reset_code_format(self):
        code = PasswordResetOTP.generate_code()
        assert len(code) == 6
        assert code.isdigit()

    def test_reset_code_grace_period(self):
        now = utcnow()
        otp = PasswordResetOTP(expires_at=PasswordResetOTP.expiry_from(now), used=False)

        assert not otp.is_expired(now + timedelta(minutes=9))
        assert otp.is_expired(now + timedelta(minutes=11))
        assert otp.usable_for_reset(now + timedelta(minutes=14))
        assert not otp.usable_for_reset(now + timedelta(minutes=16))

        otp.used = True
        assert not otp.usable_for_reset(now)


class TestClassModels:
    """Classes and enrollments."""

    def test_counts(self, db_session, group_class, student, other_student):
        enroll(db_session, group_class, student)
        enroll(db_session, group_class, other_student, status=EnrollmentStatus.pending)
        db_session.refresh(group_class)

        assert group_class.student_count == 1
        assert group_class.pending_count == 1
        assert not group_class.is_archived

    def test_one_enrollment_per_student(self, db_session, group_class, student):
        enroll(db_session, group_class, student)

        with pytest.raises(IntegrityError):
            enroll(db_session, group_class, student, status=EnrollmentStatus.pending)

    def test_class_code_is_unique(self, db_session, teacher, group_class):
        duplicate = GroupClass(
            teacher_id=teacher.id,
            class_name="IT 102 - B",
            subject="Networking",
            class_start_time=group_class.class_start_time,
            class_end_time=group_class.class_end_time,
            teacher_name=teacher.teacher_name,
            class_code=group_class.class_code,
        )
        db_session.add(duplicate)

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_deleting_class_cascades_in_database(self, db_session, group_class, enrollment):
        db_session.query(GroupClass).filter(GroupClass.id == group_class.id).delete(synchronize_session=False)
        db_session.commit()

        assert db_session.query(ClassEnrollment).count() == 0

    def test_new_enrollment_is_pending(self, db_session, group_class):
        student = create_student(db_session, email="new@school.edu", student_number="2024-0100")
        row = ClassEnrollment(class_id=group_class.id, student_id=student.id)
        db_session.add(row)
        db_session.commit()

        assert row.status == EnrollmentStatus.pending
        assert not row.is_approved


class TestQuizModels:
    """Quizzes, questions and submissions."""

    def test_questions_follow_order_number(self, db_session, teacher):
        quiz = create_quiz(db_session, teacher, questions=[
            QuizQuestion(question_type=QuestionType.identification, question="Second", correct_answer="b",
                         order_number=2),
            QuizQuestion(question_type=QuestionType.identification, question="First", correct_answer="a",
                         order_number=1, points=3),
        ])
        db_session.expire_all()

        assert [q.question for q in quiz.questions] == ["First", "Second"]
        assert quiz.total_points == 4
        assert quiz.question_count == 2
        assert not quiz.has_essay

    def test_has_essay(self, db_session, teacher):
        quiz = create_quiz(db_session, teacher, questions=[
            QuizQuestion(question_type=QuestionType.essay, question="Discuss.", order_number=1),
        ])
        assert quiz.has_essay

    def test_submission_percentage(self):
        assert StudentSubmission(score=3, max_score=4).percentage == 75
        assert StudentSubmission(score=None, max_score=4).percentage is None
        assert StudentSubmission(score=0, max_score=0).percentage is None

    def test_one_submission_per_material(self, db_session, quiz_material, student):
        db_session.add(StudentSubmission(material_id=quiz_material.id, student_id=student.id))
        db_session.commit()
        db_session.add(StudentSubmission(material_id=quiz_material.id, student_id=student.id))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_one_manual_score_per_term(self, db_session, group_class, student):
        db_session.add(GradeManualScore(class_id=group_class.id, student_id=student.id, term=Term.prelim))
        db_session.commit()
        db_session.add(GradeManualScore(class_id=group_class.id, student_id=student.id, term=Term.prelim))

        with pytest.raises(IntegrityError):
            db_session.commit()
