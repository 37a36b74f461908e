"""Tests for the authentication system."""
from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException, status
from jose import jwt

from erms.auth.service import AuthService, RESET_REQUESTED_MESSAGE, validate_new_password
from erms.config import ALGORITHM, MAX_FAILED_LOGINS, SECRET_KEY
from erms.database import utcnow
from erms.models import AuditLog, AuditStatus, PasswordResetOTP, RefreshToken, UserRole

from conftest import PASSWORD, create_user


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", data={"username": email, "password": password})


class TestLogin:
    """Login form validation, failure ordering and token issue."""

    def test_login_success_returns_tokens_and_role(self, client, teacher):
        response = login(client, "teacher@school.edu")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["role"] == "teacher"
        assert body["user_id"] == teacher.user_id
        assert body["refresh_token"]

        payload = jwt.decode(body["access_token"], SECRET_KEY, algorithms=[ALGORITHM])
        assert payload["sub"] == "teacher@school.edu"
        assert payload["role"] == "teacher"
        assert payload["type"] == "access"

    def test_login_email_is_case_insensitive(self, client, student):
        response = login(client, "  Student@School.EDU ")
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.parametrize("email,password,detail", [
        ("", "", "All fields are required."),
        ("", "whatever", "Email address is required."),
        ("someone@school.edu", "", "Password is required."),
        ("not-an-email", "whatever", "Email format is invalid."),
    ])
    def test_login_form_validation(self, client, email, password, detail):
        response = login(client, email, password)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == detail

    def test_unknown_account(self, client):
        response = login(client, "nobody@school.edu")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Account not found."

    def test_wrong_password_counts_failure(self, client, db_session, student):
        response = login(client, "student@school.edu", "WrongPass1")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Incorrect password."
        db_session.refresh(student.user)
        assert student.user.failed_login_attempts == 1
        failure = db_session.query(AuditLog).filter(AuditLog.status == AuditStatus.failure).one()
        assert failure.action == "Failed login attempt"

    def test_account_locks_after_repeated_failures(self, client, db_session, student):
        for _ in range(MAX_FAILED_LOGINS):
            login(client, "student@school.edu", "WrongPass1")

        db_session.refresh(student.user)
        assert student.user.is_locked()

        # Even the right password is refused while locked
        response = login(client, "student@school.edu")
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "temporarily locked" in response.json()["detail"]

    def test_expired_lock_starts_a_new_count(self, client, db_session, student):
        student.user.failed_login_attempts = MAX_FAILED_LOGINS
        student.user.locked_until = utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = login(client, "student@school.edu", "WrongPass1")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        db_session.refresh(student.user)
        assert student.user.failed_login_attempts == 1
        assert not student.user.is_locked()

    def test_successful_login_resets_failures(self, client, db_session, student):
        login(client, "student@school.edu", "WrongPass1")
        login(client, "student@school.edu")

        db_session.refresh(student.user)
        assert student.user.failed_login_attempts == 0
        assert student.user.last_login is not None

    def test_disabled_account_is_refused_after_password_check(self, client, db_session):
        create_user(db_session, "disabled@school.edu", UserRole.teacher, is_active=False)

        assert login(client, "disabled@school.edu", "WrongPass1").json()["detail"] == "Incorrect password."
        response = login(client, "disabled@school.edu")
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Your account is disabled. Please contact the administrator."


class TestTokens:
    """Access token verification, refresh and logout."""

    def test_me_returns_profile(self, client, student, student_headers):
        response = client.get("/auth/me", headers=student_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["role"] == "student"
        assert body["display_name"] == "Juan Dela Cruz"
        assert body["student"]["student_number"] == "2024-0001"
        assert body["teacher"] is None

    def test_me_requires_token(self, client):
        assert client.get("/auth/me").status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_token_is_rejected_as_access_token(self, db_session, student):
        service = AuthService(db_session)
        token = jwt.encode(
            {"sub": student.email, "user_id": student.user_id, "type": "refresh"},
            SECRET_KEY, algorithm=ALGORITHM,
        )
        with pytest.raises(HTTPException) as exc:
            service.verify_token(token)
        assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_access_token(self, db_session, student):
        service = AuthService(db_session)
        token = service.create_access_token(
            {"sub": student.email, "user_id": student.user_id}, expires_delta=timedelta(seconds=-1)
        )
        with pytest.raises(HTTPException):
            service.verify_token(token)

    def test_refresh_issues_new_access_token(self, client, student):
        tokens = login(client, "student@school.edu").json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["refresh_token"] == tokens["refresh_token"]
        assert response.json()["access_token"]

    def test_logout_revokes_refresh_token(self, client, db_session, student):
        tokens = login(client, "student@school.edu").json()

        response = client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == status.HTTP_200_OK

        stored = db_session.query(RefreshToken).filter(RefreshToken.token == tokens["refresh_token"]).one()
        assert stored.revoked is True
        refreshed = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refreshed.status_code == status.HTTP_401_UNAUTHORIZED

    def test_disabled_user_cannot_use_token(self, client, db_session, student, student_headers):
        student.user.is_active = False
        db_session.commit()

        response = client.get("/auth/me", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestRoleGuards:
    """Role dependencies keep each area to its own users."""

    def test_student_cannot_reach_admin_routes(self, client, student_headers):
        response = client.get("/admin/dashboard", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_teacher_cannot_reach_student_routes(self, client, teacher_headers):
        response = client.get("/student/classes", headers=teacher_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_teacher_without_profile(self, client, db_session):
        user = create_user(db_session, "bare.teacher@school.edu", UserRole.teacher)
        headers = {"Authorization": f"Bearer {AuthService(db_session)._access_token_for(user)}"}

        response = client.get("/teacher/classes", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Teacher profile not found"


class TestPasswords:
    """Password change and the emailed reset code flow."""

    @pytest.mark.parametrize("password", ["", "abc", "aaaaaaaa"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(HTTPException) as exc:
            validate_new_password(password)
        assert exc.value.status_code == status.HTTP_400_BAD_REQUEST

    def test_change_password(self, client, db_session, teacher, teacher_headers):
        response = client.post(
            "/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "NewSecret456"},
            headers=teacher_headers,
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db_session.refresh(teacher.user)
        assert teacher.user.verify_password("NewSecret456")

    def test_change_password_wrong_current(self, client, teacher_headers):
        response = client.post(
            "/auth/change-password",
            json={"current_password": "nope-nope", "new_password": "NewSecret456"},
            headers=teacher_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Current password is incorrect"

    @patch("erms.auth.service.send_otp_email", return_value=True)
    def test_forgot_password_unknown_email_looks_the_same(self, mock_send, client):
        response = client.post("/auth/forgot-password", json={"email": "ghost@school.edu"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == RESET_REQUESTED_MESSAGE
        mock_send.assert_not_called()

    @patch("erms.auth.service.send_otp_email", return_value=True)
    def test_full_reset_flow(self, mock_send, client, db_session, student):
        tokens = login(client, "student@school.edu").json()

        client.post("/auth/forgot-password", json={"email": "student@school.edu"})
        mock_send.assert_called_once()
        to, code = mock_send.call_args.args
        assert to == "student@school.edu"
        assert len(code) == 6

        verified = client.post("/auth/verify-otp", json={"email": "student@school.edu", "otp": code})
        assert verified.status_code == status.HTTP_200_OK
        reset_token = verified.json()["reset_token"]

        reset = client.post("/auth/reset-password", json={
            "email": "student@school.edu",
            "reset_token": reset_token,
            "new_password": "BrandNew789",
        })
        assert reset.status_code == status.HTTP_200_OK

        assert login(client, "student@school.edu", "BrandNew789").status_code == status.HTTP_200_OK
        # Sessions from before the reset are signed out
        refreshed = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refreshed.status_code == status.HTTP_401_UNAUTHORIZED
        # The code cannot be redeemed twice
        again = client.post("/auth/reset-password", json={
            "email": "student@school.edu",
            "reset_token": reset_token,
            "new_password": "Another000",
        })
        assert again.status_code == status.HTTP_400_BAD_REQUEST

    @patch("erms.auth.service.send_otp_email", return_value=True)
    def test_new_code_invalidates_previous(self, mock_send, db_session, student):
        service = AuthService(db_session)
        first = service.request_password_reset(student.email)
        second = service.request_password_reset(student.email)

        db_session.refresh(first)
        assert first.used is True
        assert second.used is False

    @patch("erms.auth.service.send_otp_email", return_value=True)
    def test_wrong_code(self, mock_send, client, student):
        client.post("/auth/forgot-password", json={"email": "student@school.edu"})
        code = mock_send.call_args.args[1]
        wrong = "000000" if code != "000000" else "111111"

        response = client.post("/auth/verify-otp", json={"email": "student@school.edu", "otp": wrong})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid OTP code"

    @patch("erms.auth.service.send_otp_email", return_value=True)
    def test_expired_code(self, mock_send, db_session, student):
        service = AuthService(db_session)
        otp = service.request_password_reset(student.email)
        otp.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            service.verify_otp(student.email, otp.otp_code)
        assert exc.value.detail == "OTP has expired. Please request a new one."

    def test_verified_code_has_grace_period(self, db_session, student):
        now = utcnow()
        otp = PasswordResetOTP(
            user_id=student.user_id, email=student.email, otp_code="123456",
            expires_at=now - timedelta(minutes=2),
        )
        assert otp.usable_for_reset(now)
        assert not otp.usable_for_reset(now + timedelta(minutes=10))


class TestProfile:
    """Users edit their own profile."""

    def test_student_updates_name_and_course(self, client, db_session, student, student_headers):
        response = client.put(
            "/auth/profile",
            json={"student_name": "Juan D. Cruz", "course": "BSCS"},
            headers=student_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["student"]["student_name"] == "Juan D. Cruz"
        db_session.refresh(student)
        assert student.course == "BSCS"

    def test_email_change_updates_profile_copy(self, client, db_session, teacher, teacher_headers):
        response = client.put("/auth/profile", json={"email": "m.santos@school.edu"}, headers=teacher_headers)

        assert response.status_code == status.HTTP_200_OK
        db_session.refresh(teacher)
        assert teacher.email == "m.santos@school.edu"
        assert teacher.user.email == "m.santos@school.edu"

    def test_email_taken(self, client, student, teacher_headers):
        response = client.put("/auth/profile", json={"email": "student@school.edu"}, headers=teacher_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"] == "Email is already in use"
