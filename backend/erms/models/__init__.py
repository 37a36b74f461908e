"""Database models package."""

from .enums import (
    UserRole, EnrollmentStatus, QuizKind, QuestionType, SubmissionStatus, Term,
    AuditActionType, AuditStatus,
)
from .user import User, RefreshToken, PasswordResetOTP
from .people import Student, Teacher
from .classroom import GroupClass, ClassEnrollment, ClassMaterial
from .quiz import Quiz, QuizQuestion
from .submission import StudentSubmission, QuizAttempt, QuizProgress
from .grades import GradeComputationSettings, GradeManualScore, StudentExamScore
from .messaging import Conversation, Message, StudentTeacherMessage
from .audit import AuditLog

__all__ = [
    # Enums
    "UserRole", "EnrollmentStatus", "QuizKind", "QuestionType", "SubmissionStatus",
    "Term", "AuditActionType", "AuditStatus",
    # Accounts
    "User", "RefreshToken", "PasswordResetOTP", "Student", "Teacher",
    # Classes
    "GroupClass", "ClassEnrollment", "ClassMaterial",
    # Quizzes
    "Quiz", "QuizQuestion",
    # Submissions
    "StudentSubmission", "QuizAttempt", "QuizProgress",
    # Grades
    "GradeComputationSettings", "GradeManualScore", "StudentExamScore",
    # Messaging
    "Conversation", "Message", "StudentTeacherMessage",
    # Audit
    "AuditLog",
]
