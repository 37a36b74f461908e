"""Authentication router for handling user authentication endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request, Response, Body, Form
from sqlalchemy.orm import Session

from erms.audit.service import AuditService, client_info
from erms.database import get_db
from erms.models import AuditActionType, AuditStatus, User
from .models import (
    Token, LoginResponse, UserResponse, ChangePassword, ForgotPasswordRequest,
    VerifyOTPRequest, VerifyOTPResponse, ResetPasswordRequest, ProfileUpdate,
)
from .service import AuthService, RESET_REQUESTED_MESSAGE, get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency to get an instance of AuthService."""
    return AuthService(db)


@router.post("/login", response_model=LoginResponse)
async def login_for_access_token(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    service: AuthService = Depends(get_auth_service)
):
    """OAuth2 compatible token login; ``username`` carries the email address."""
    email = service.validate_login_input(username, password)
    ip_address, user_agent = client_info(request)
    audit = AuditService(service.db)

    user, failure = service.authenticate_user(email, password)
    if failure == "not_found":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account not found.")
    if failure == "locked":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is temporarily locked due to too many failed login attempts",
        )
    if failure == "bad_password":
        service.record_login_attempt(user, success=False)
        audit.record(
            "Failed login attempt", AuditActionType.login, user=user,
            status=AuditStatus.failure, resource_type="auth",
            details="Incorrect password", request=request,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if failure == "disabled":
        audit.record(
            "Login blocked for disabled account", AuditActionType.login, user=user,
            status=AuditStatus.warning, resource_type="auth", request=request,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is disabled. Please contact the administrator.",
        )

    service.record_login_attempt(user, success=True)
    tokens = service.issue_tokens(user, user_agent=user_agent, ip_address=ip_address)
    audit.record(
        "User logged in", AuditActionType.login, user=user, resource_type="auth",
        details=f"Role: {user.role.value}", request=request,
    )
    return tokens


@router.post("/refresh", response_model=Token)
async def refresh_access_token(
    refresh_token: str = Body(embed=True),
    service: AuthService = Depends(get_auth_service)
):
    """Refresh an access token using a refresh token."""
    return service.refresh_tokens(refresh_token)


@router.post("/logout")
async def logout(
    request: Request,
    refresh_token: str = Body(embed=True),
    service: AuthService = Depends(get_auth_service)
):
    """Revoke a refresh token."""
    user = service.revoke_refresh_token(refresh_token)
    if user is not None:
        AuditService(service.db).record(
            "User logged out", AuditActionType.logout, user=user, resource_type="auth", request=request,
        )
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    """Get the current user's account and profile."""
    return current_user


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    request: Request,
    password_data: ChangePassword,
    current_user: User = Depends(get_current_active_user),
    service: AuthService = Depends(get_auth_service)
):
    """Change the current user's password."""
    service.change_password(current_user, password_data.current_password, password_data.new_password)
    AuditService(service.db).record(
        "Password changed", AuditActionType.update, user=current_user,
        resource_type="user", resource_id=current_user.id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Mail a reset code. The reply never reveals whether the account exists."""
    service.request_password_reset(data.email)
    return {"message": RESET_REQUESTED_MESSAGE}


@router.post("/verify-otp", response_model=VerifyOTPResponse)
async def verify_otp(
    data: VerifyOTPRequest,
    service: AuthService = Depends(get_auth_service)
):
    otp = service.verify_otp(data.email, data.otp)
    return VerifyOTPResponse(message="OTP verified successfully", reset_token=otp.id)


@router.post("/reset-password")
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Reset a user's password using a verified reset code."""
    user = service.reset_password(data.email, data.reset_token, data.new_password)
    AuditService(service.db).record(
        "Password reset", AuditActionType.update, user=user,
        resource_type="user", resource_id=user.id, request=request,
    )
    return {"message": "Password has been reset successfully"}


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: Request,
    data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    service: AuthService = Depends(get_auth_service)
):
    """Update the caller's own teacher or student profile."""
    user = service.update_profile(current_user, data)
    AuditService(service.db).record(
        "Profile updated", AuditActionType.update, user=user,
        resource_type=user.role.value, resource_id=user.id, request=request,
    )
    return user
