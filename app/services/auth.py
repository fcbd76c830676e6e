"""Authentication service: registration, approval, login and password recovery."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import Settings, get_app_settings
from app.errors import AuthError, DuplicateEmailError, NotFoundError, ValidationError
from app.services.jwt import JWTService
from app.services.mailer import Mailer, get_mailer
from app.services.password import PasswordHasher
from app.services.reset_store import ResetStore
from app.services.store import normalize_email
from app.services.user_store import UserStore

logger = logging.getLogger("simple8_auth")

MSG_MISSING_FIELDS = "Thiếu trường bắt buộc"
MSG_EMAIL_EXISTS = "Email đã tồn tại"
MSG_REGISTERED = "Đăng ký thành công. Vui lòng đợi admin phê duyệt."
MSG_MISSING_APPROVAL_FIELDS = "Thiếu email/code"
MSG_BAD_ADMIN_CODE = "Sai mã admin"
MSG_APPROVED = "Đã duyệt"
MSG_BAD_CREDENTIALS = "Email hoặc mật khẩu sai"
MSG_NOT_APPROVED = "Tài khoản chưa được duyệt"
MSG_FORGOT = "Nếu email tồn tại, chúng tôi đã gửi hướng dẫn."
MSG_INVALID_RESET = "Token không hợp lệ"
MSG_EXPIRED_RESET = "Token đã hết hạn"
MSG_RESET_DONE = "Đã đặt lại mật khẩu"
MSG_MISSING_NEW_PASSWORD = "Thiếu mật khẩu mới"
MSG_USER_NOT_FOUND = "Không tìm thấy người dùng"
MSG_WRONG_OLD_PASSWORD = "Mật khẩu hiện tại không đúng"
MSG_PASSWORD_CHANGED = "Đã đổi mật khẩu"

# 24 random bytes, hex encoded to 48 characters.
RESET_TOKEN_BYTES = 24


@dataclass
class PublicUser:
    """User fields safe to return to clients."""

    id: str
    email: str
    name: str


@dataclass
class LoginResult:
    token: str
    user: PublicUser


class AuthService:
    """Orchestrates the store gateways, password hasher, token issuer and mailer."""

    def __init__(self, settings: Settings, mailer: Mailer) -> None:
        self.settings = settings
        self.mailer = mailer
        self.hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        self.jwt = JWTService(settings)

    def register(self, db: Session, name: str | None, email: str | None, password: str | None) -> str:
        """Create an unapproved account and notify the admin."""
        lower = normalize_email(email)
        if not name or not lower or not password:
            raise ValidationError(MSG_MISSING_FIELDS)

        users = UserStore(db)
        # Fast path only; the unique index on users.email is what actually prevents duplicates.
        if users.find_by_email(lower):
            raise ValidationError(MSG_EMAIL_EXISTS)

        pass_hash = self.hasher.hash(password)
        try:
            users.insert(name=name, email=lower, pass_hash=pass_hash)
        except DuplicateEmailError:
            logger.info("Concurrent registration for %s rejected by unique index", lower)
            raise ValidationError(MSG_EMAIL_EXISTS) from None

        logger.info("Registered %s, awaiting approval", lower)
        if self.settings.ADMIN_EMAIL:
            self.mailer.send(
                to=self.settings.ADMIN_EMAIL,
                subject="Yêu cầu duyệt tài khoản mới",
                body=f"Người dùng mới: {name} <{lower}>. Dùng code ADMIN_CODE để duyệt qua API /api/auth/approve.",
            )
        return MSG_REGISTERED

    def approve(self, db: Session, email: str | None, code: str | None) -> str:
        """Mark an account approved when the admin code matches."""
        if not email or not code:
            raise ValidationError(MSG_MISSING_APPROVAL_FIELDS)
        admin_code = self.settings.ADMIN_CODE
        if not admin_code or not secrets.compare_digest(code.encode("utf-8"), admin_code.encode("utf-8")):
            logger.warning("Approval attempt for %s with wrong admin code", normalize_email(email))
            raise AuthError(MSG_BAD_ADMIN_CODE, status_code=403)

        count = UserStore(db).update_approved(email, approved=True)
        if count:
            logger.info("Approved %s", normalize_email(email))
        else:
            logger.warning("Approval for unknown email %s matched no user", normalize_email(email))
        return MSG_APPROVED

    def login(self, db: Session, email: str | None, password: str | None) -> LoginResult:
        """Check credentials and issue a bearer token.

        Unknown email and wrong password produce the same error so callers
        cannot probe which accounts exist.
        """
        user = UserStore(db).find_by_email(email)
        if not user:
            raise AuthError(MSG_BAD_CREDENTIALS)
        if not user.approved:
            raise AuthError(MSG_NOT_APPROVED, status_code=403)
        if not self.hasher.verify(password or "", user.pass_hash):
            raise AuthError(MSG_BAD_CREDENTIALS)

        token = self.jwt.create_token(user_id=user.id, email=user.email, name=user.name)
        return LoginResult(token=token, user=PublicUser(id=user.id, email=user.email, name=user.name))

    def forgot(self, db: Session, email: str | None) -> str:
        """Issue a reset token if the account exists. The reply never says whether it does."""
        lower = normalize_email(email)
        user = UserStore(db).find_by_email(lower)
        if not user:
            return MSG_FORGOT

        token = secrets.token_hex(RESET_TOKEN_BYTES)
        ttl = self.settings.RESET_TOKEN_TTL_MINUTES
        ResetStore(db).insert(email=lower, token=token, expires_at=datetime.utcnow() + timedelta(minutes=ttl))
        logger.info("Issued password reset token for %s", lower)

        self.mailer.send(
            to=lower,
            subject="Đặt lại mật khẩu",
            body=f"Mã đặt lại: {token}\nHết hạn sau {ttl} phút.",
        )
        return MSG_FORGOT

    def reset(self, db: Session, email: str | None, token: str | None, new_password: str | None) -> str:
        """Consume a reset token and set a new password."""
        if not new_password:
            raise ValidationError(MSG_MISSING_NEW_PASSWORD)

        resets = ResetStore(db)
        reset = resets.find(email, token)
        if not reset:
            raise AuthError(MSG_INVALID_RESET)
        if reset.is_expired():
            raise AuthError(MSG_EXPIRED_RESET)

        reset_id, reset_email = reset.id, reset.email
        pass_hash = self.hasher.hash(new_password)

        # Token is consumed before the hash changes; the update's commit covers both.
        if not resets.delete(reset_id, commit=False):
            # Consumed by a concurrent request between find and delete.
            db.rollback()
            raise AuthError(MSG_INVALID_RESET)
        UserStore(db).update_pass_hash_by_email(reset_email, pass_hash)
        logger.info("Password reset for %s", reset_email)
        return MSG_RESET_DONE

    def change_password(
        self, db: Session, user_id: str, old_password: str | None, new_password: str | None
    ) -> str:
        """Change the password of an authenticated user after checking the current one."""
        if not new_password:
            raise ValidationError(MSG_MISSING_NEW_PASSWORD)

        users = UserStore(db)
        user = users.find_by_id(user_id)
        if not user:
            raise NotFoundError(MSG_USER_NOT_FOUND)
        if not self.hasher.verify(old_password or "", user.pass_hash):
            raise AuthError(MSG_WRONG_OLD_PASSWORD)

        users.update_pass_hash_by_id(user.id, self.hasher.hash(new_password))
        logger.info("Password changed for %s", user.email)
        return MSG_PASSWORD_CHANGED


def get_auth_service(
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    """FastAPI dependency assembling the auth service."""
    return AuthService(settings, mailer)
