"""Authentication request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic import ConfigDict

from erms.models import User, RefreshToken, PasswordResetOTP  # noqa: F401
from erms.models.enums import UserRole


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: str


class LoginResponse(Token):
    role: UserRole
    user_id: int


class TokenData(BaseModel):
    email: Optional[str] = None
    user_id: Optional[int] = None
    role: Optional[UserRole] = None


class StudentProfile(BaseModel):
    id: str
    student_number: str
    student_name: str
    course: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class TeacherProfile(BaseModel):
    id: str
    employee_id: str
    teacher_name: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    role: UserRole
    is_active: bool
    display_name: str
    last_login: Optional[datetime] = None
    created_at: datetime
    student: Optional[StudentProfile] = None
    teacher: Optional[TeacherProfile] = None

    model_config = ConfigDict(from_attributes=True)


class ChangePassword(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class VerifyOTPResponse(BaseModel):
    message: str
    reset_token: str


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    reset_token: str
    new_password: str


class ProfileUpdate(BaseModel):
    """Teachers may change teacher_name and email; students student_name, email and course."""
    email: Optional[EmailStr] = None
    teacher_name: Optional[str] = Field(None, min_length=1, max_length=255)
    student_name: Optional[str] = Field(None, min_length=1, max_length=255)
    course: Optional[str] = Field(None, min_length=1, max_length=255)
