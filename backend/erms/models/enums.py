"""Shared enums for models, schemas and auth."""
import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"


class EnrollmentStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class QuizKind(str, enum.Enum):
    """What a row in the quizzes table represents."""
    quiz = "quiz"
    exam = "exam"
    assignment = "assignment"


class QuestionType(str, enum.Enum):
    multiple_choice = "multiple-choice"
    true_false = "true-false"
    identification = "identification"
    essay = "essay"
    enumeration = "enumeration"
    math = "math"


class SubmissionStatus(str, enum.Enum):
    submitted = "submitted"
    graded = "graded"


class Term(str, enum.Enum):
    prelim = "prelim"
    midterm = "midterm"
    finals = "finals"


class AuditActionType(str, enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"
    login = "login"
    logout = "logout"
    access = "access"
    system = "system"


class AuditStatus(str, enum.Enum):
    success = "success"
    failure = "failure"
    warning = "warning"
