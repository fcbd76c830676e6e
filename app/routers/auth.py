"""Authentication API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user
from app.schemas.auth import (
    ApproveRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from app.services.auth import AuthService, get_auth_service

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Register a new account. It stays unusable until an admin approves it."""
    message = auth_service.register(db, body.name, body.email, body.password)
    return MessageResponse(message=message)


@router.post("/approve", response_model=MessageResponse)
def approve(
    body: ApproveRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Approve an account using the shared admin code."""
    message = auth_service.approve(db, body.email, body.code)
    return MessageResponse(message=message)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and receive a JWT token."""
    result = auth_service.login(db, body.email, body.password)
    return LoginResponse(
        token=result.token,
        user=UserResponse(id=result.user.id, email=result.user.email, name=result.user.name),
    )


@router.post("/forgot", response_model=MessageResponse)
def forgot(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Request a password reset code by email."""
    message = auth_service.forgot(db, body.email)
    return MessageResponse(message=message)


@router.post("/reset", response_model=MessageResponse)
def reset(
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Set a new password using an emailed reset code."""
    message = auth_service.reset(db, body.email, body.token, body.new_password)
    return MessageResponse(message=message)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Change the password of the authenticated user."""
    message = auth_service.change_password(db, user.user_id, body.old_password, body.new_password)
    return MessageResponse(message=message)
