"""Test configuration and fixtures."""

import os

# Configure before anything imports erms.config
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SMTP_HOST", "")

from datetime import time

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from erms.auth.service import AuthService
from erms.database import Base, get_db
from erms.models import (
    ClassEnrollment, ClassMaterial, EnrollmentStatus, GroupClass, Quiz, QuizKind, QuizQuestion,
    QuestionType, Student, Teacher, User, UserRole,
)
from erms.storage import LocalStorage, get_storage

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
PASSWORD = "Secret123!"

_real_gensalt = bcrypt.gensalt


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the cheapest bcrypt cost so fixtures do not dominate test time."""
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": _real_gensalt(rounds, prefix))


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"), "/files")


@pytest.fixture
def client(db_session, storage):
    """API client sharing the test session, so fixtures and requests see the same rows."""
    from erms.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# Factories

def create_user(db, email, role, password=PASSWORD, full_name=None, is_active=True):
    user = User(email=email, role=role, full_name=full_name, is_active=is_active)
    user.set_password(password)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_teacher(db, email="teacher@school.edu", employee_id="EMP-001", name="Maria Santos"):
    user = create_user(db, email, UserRole.teacher)
    teacher = Teacher(user=user, employee_id=employee_id, teacher_name=name, email=email)
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


def create_student(db, email="student@school.edu", student_number="2024-0001", name="Juan Dela Cruz",
                   course="BSIT"):
    user = create_user(db, email, UserRole.student)
    student = Student(user=user, student_number=student_number, student_name=name, course=course, email=email)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def create_class(db, teacher, subject="Programming 1", code="ABC123", start=time(8, 0), end=time(9, 30)):
    group_class = GroupClass(
        teacher_id=teacher.id,
        class_name="IT 101 - A",
        subject=subject,
        class_start_time=start,
        class_end_time=end,
        teacher_name=teacher.teacher_name,
        class_code=code,
    )
    db.add(group_class)
    db.commit()
    db.refresh(group_class)
    return group_class


def enroll(db, group_class, student, status=EnrollmentStatus.approved):
    enrollment = ClassEnrollment(class_id=group_class.id, student_id=student.id, status=status)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


def create_quiz(db, teacher, kind=QuizKind.quiz, questions=None, show_answer_key=False, title="Chapter 1 Quiz"):
    if questions is None:
        questions = [
            QuizQuestion(
                question_type=QuestionType.multiple_choice,
                question="What does CPU stand for?",
                options=["Central Processing Unit", "Computer Power Unit", "Core Program Utility"],
                correct_answer="Central Processing Unit",
                points=2,
                order_number=1,
            ),
            QuizQuestion(
                question_type=QuestionType.true_false,
                question="RAM is volatile memory.",
                correct_answer="true",
                points=1,
                order_number=2,
            ),
            QuizQuestion(
                question_type=QuestionType.identification,
                question="Brain of the computer",
                correct_answer="CPU",
                points=1,
                order_number=3,
            ),
        ]
    quiz = Quiz(
        teacher_id=teacher.id,
        kind=kind,
        title=title,
        description="Basics of computer hardware",
        quiz_type="assignment" if kind == QuizKind.assignment else "multiple-choice",
        show_answer_key=show_answer_key,
        questions=questions,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz


def post_material(db, group_class, quiz):
    material = ClassMaterial(
        class_id=group_class.id,
        quiz_id=quiz.id,
        material_type=quiz.kind,
        title=quiz.title,
        description=quiz.description,
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


def bearer(db, user):
    token = AuthService(db)._access_token_for(user)
    return {"Authorization": f"Bearer {token}"}


# Fixtures

@pytest.fixture
def admin_user(db_session):
    return create_user(db_session, "admin@school.edu", UserRole.admin, full_name="Registrar")


@pytest.fixture
def teacher(db_session):
    return create_teacher(db_session)


@pytest.fixture
def other_teacher(db_session):
    return create_teacher(db_session, email="other.teacher@school.edu", employee_id="EMP-002", name="Jose Reyes")


@pytest.fixture
def student(db_session):
    return create_student(db_session)


@pytest.fixture
def other_student(db_session):
    return create_student(
        db_session, email="second.student@school.edu", student_number="2024-0002", name="Ana Lim"
    )


@pytest.fixture
def admin_headers(db_session, admin_user):
    return bearer(db_session, admin_user)


@pytest.fixture
def teacher_headers(db_session, teacher):
    return bearer(db_session, teacher.user)


@pytest.fixture
def student_headers(db_session, student):
    return bearer(db_session, student.user)


@pytest.fixture
def group_class(db_session, teacher):
    return create_class(db_session, teacher)


@pytest.fixture
def enrollment(db_session, group_class, student):
    return enroll(db_session, group_class, student)


@pytest.fixture
def quiz(db_session, teacher):
    return create_quiz(db_session, teacher)


@pytest.fixture
def quiz_material(db_session, group_class, quiz, enrollment):
    return post_material(db_session, group_class, quiz)


@pytest.fixture
def assignment_material(db_session, teacher, group_class, enrollment):
    assignment = create_quiz(db_session, teacher, kind=QuizKind.assignment, questions=[], title="Essay on networks")
    return post_material(db_session, group_class, assignment)
