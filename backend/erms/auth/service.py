"""Authentication service for handling user authentication and token management."""
import logging
from datetime import datetime, timedelta, UTC
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from erms.config import (
    SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS,
    MAX_FAILED_LOGINS, LOCKOUT_MINUTES,
)
from erms.database import get_db, utcnow
from erms.emailer import send_otp_email
from erms.models import User, RefreshToken, PasswordResetOTP, Student, Teacher, UserRole
from .models import LoginResponse, Token, TokenData, ProfileUpdate

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

MIN_PASSWORD_LENGTH = 6
RESET_REQUESTED_MESSAGE = "If an account exists with this email, you will receive an OTP code shortly."

_email_adapter = TypeAdapter(EmailStr)


def validate_new_password(password: str) -> None:
    """Reject passwords that are too short or a single repeated character."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    if len(set(password)) == 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password is too weak. Please choose a stronger password.",
        )


def is_valid_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a new access token."""
        to_encode = data.copy()
        expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=15))
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    def create_refresh_token(self, user_id: int, user_agent: str = None, ip_address: str = None) -> RefreshToken:
        """Create and store a new refresh token."""
        db_token = RefreshToken(
            token=RefreshToken.generate_token(),
            user_id=user_id,
            expires_at=utcnow() + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self.db.add(db_token)
        self.db.commit()
        self.db.refresh(db_token)
        return db_token

    def verify_token(self, token: str) -> TokenData:
        """Verify and decode a JWT access token."""
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            raise credentials_exception
        email: str = payload.get("sub")
        user_id: int = payload.get("user_id")
        if email is None or user_id is None or payload.get("type") != "access":
            raise credentials_exception
        return TokenData(email=email, user_id=user_id, role=payload.get("role"))

    def _access_token_for(self, user: User) -> str:
        return self.create_access_token(
            data={"sub": user.email, "user_id": user.id, "role": user.role.value},
            expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    @staticmethod
    def validate_login_input(email: str, password: str) -> str:
        """Check the raw login form and return the normalized email."""
        email = (email or "").strip().lower()
        if not email and not password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="All fields are required.")
        if not email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email address is required.")
        if not password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required.")
        if not is_valid_email(email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email format is invalid.")
        return email

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        """Look up and check a user's credentials.

        Returns ``(user, failure)`` where ``failure`` is ``None`` on success,
        ``"not_found"``, ``"locked"``, ``"bad_password"`` or ``"disabled"``.
        The caller decides what to audit and which error to raise.
        """
        user = self.get_user_by_email(email)
        if not user:
            return None, "not_found"
        if user.is_locked():
            return user, "locked"
        if not user.verify_password(password):
            return user, "bad_password"
        if not user.is_active:
            return user, "disabled"
        return user, None

    def issue_tokens(self, user: User, user_agent: str = None, ip_address: str = None) -> LoginResponse:
        refresh_token = self.create_refresh_token(user.id, user_agent=user_agent, ip_address=ip_address)
        return LoginResponse(
            access_token=self._access_token_for(user),
            refresh_token=refresh_token.token,
            role=user.role,
            user_id=user.id,
        )

    def refresh_tokens(self, refresh_token: str) -> Token:
        """Refresh access token using a valid refresh token."""
        db_token = self.db.query(RefreshToken).filter(
            RefreshToken.token == refresh_token,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > utcnow(),
        ).first()
        if not db_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired refresh token",
            )

        user = self.db.get(User, db_token.user_id)
        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found or inactive",
            )
        return Token(access_token=self._access_token_for(user), refresh_token=db_token.token)

    def revoke_refresh_token(self, token: str) -> Optional[User]:
        """Revoke a refresh token and return its owner, if the token exists."""
        db_token = self.db.query(RefreshToken).filter(RefreshToken.token == token).first()
        if not db_token:
            return None
        db_token.revoked = True
        self.db.commit()
        return db_token.user

    def record_login_attempt(self, user: User, success: bool) -> None:
        """Track consecutive failures and lock the account once the limit is reached."""
        if success:
            user.failed_login_attempts = 0
            user.locked_until = None
            user.last_login = utcnow()
        else:
            if user.locked_until is not None:
                # An expired lock starts a fresh count
                user.failed_login_attempts = 0
                user.locked_until = None
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
            if user.failed_login_attempts >= MAX_FAILED_LOGINS:
                user.locked_until = utcnow() + timedelta(minutes=LOCKOUT_MINUTES)
                logger.warning(f"Locked account {user.email} after {user.failed_login_attempts} failed logins")
        self.db.commit()

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        validate_new_password(new_password)
        if not user.verify_password(current_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect",
            )
        user.set_password(new_password)
        self.db.commit()

    def request_password_reset(self, email: str) -> Optional[PasswordResetOTP]:
        """Issue and mail a reset code. Unknown emails are ignored silently."""
        user = self.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        # Only the newest code stays valid
        self.db.query(PasswordResetOTP).filter(
            PasswordResetOTP.user_id == user.id,
            PasswordResetOTP.used.is_(False),
        ).update({PasswordResetOTP.used: True}, synchronize_session=False)

        otp = PasswordResetOTP(
            user_id=user.id,
            email=user.email,
            otp_code=PasswordResetOTP.generate_code(),
            expires_at=PasswordResetOTP.expiry_from(utcnow()),
        )
        self.db.add(otp)
        self.db.commit()
        self.db.refresh(otp)

        if not send_otp_email(user.email, otp.otp_code):
            logger.error(f"Could not deliver reset code to {user.email}")
        return otp

    def verify_otp(self, email: str, code: str) -> PasswordResetOTP:
        otp = self.db.query(PasswordResetOTP).filter(
            PasswordResetOTP.email == email.strip().lower(),
            PasswordResetOTP.otp_code == code.strip(),
            PasswordResetOTP.used.is_(False),
        ).order_by(PasswordResetOTP.created_at.desc()).first()
        if not otp:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP code")
        if otp.is_expired():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OTP has expired. Please request a new one.",
            )
        return otp

    def reset_password(self, email: str, reset_token: str, new_password: str) -> User:
        validate_new_password(new_password)
        otp = self.db.query(PasswordResetOTP).filter(
            PasswordResetOTP.id == reset_token,
            PasswordResetOTP.email == email.strip().lower(),
        ).first()
        if not otp or not otp.usable_for_reset():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token",
            )
        user = otp.user
        user.set_password(new_password)
        user.failed_login_attempts = 0
        user.locked_until = None
        otp.used = True
        # Force sign-in everywhere with the new password
        for token in user.refresh_tokens:
            token.revoked = True
        self.db.commit()
        return user

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        new_email = changes.get("email")
        if new_email:
            new_email = new_email.strip().lower()
            taken = self.db.query(User).filter(User.email == new_email, User.id != user.id).first()
            if taken:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already in use")
            user.email = new_email

        if user.role == UserRole.teacher and user.teacher:
            if "teacher_name" in changes:
                user.teacher.teacher_name = changes["teacher_name"].strip()
            if new_email:
                user.teacher.email = new_email
        elif user.role == UserRole.student and user.student:
            if "student_name" in changes:
                user.student.student_name = changes["student_name"].strip()
            if "course" in changes:
                user.student.course = changes["course"].strip()
            if new_email:
                user.student.email = new_email
        elif user.role != UserRole.admin:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

        self.db.commit()
        self.db.refresh(user)
        return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Dependency to get the current user from the JWT token."""
    token_data = AuthService(db).verify_token(token)
    user = db.get(User, token_data.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Dependency to get the current active user."""
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account is disabled.")
    return current_user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Build a dependency that admits only users holding one of ``roles``."""
    def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to access this resource",
            )
        return current_user
    return dependency


get_current_admin = require_roles(UserRole.admin)


def get_current_teacher(current_user: User = Depends(require_roles(UserRole.teacher))) -> Teacher:
    if current_user.teacher is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teacher profile not found")
    return current_user.teacher


def get_current_student(current_user: User = Depends(require_roles(UserRole.student))) -> Student:
    if current_user.student is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student profile not found")
    return current_user.student
