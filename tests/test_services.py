"""Tests for the hasher, token service, mailer, settings and store gateways."""

import smtplib
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from jose import jwt
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import DuplicateEmailError, InvalidToken, StoreError
from app.services.jwt import JWTService
from app.services.mailer import NullMailer, SmtpMailer, build_mailer
from app.services.password import PasswordHasher
from app.services.reset_store import ResetStore
from app.services.user_store import UserStore


class TestPasswordHasher:
    """Tests for bcrypt hashing."""

    def test_hash_and_verify(self):
        hasher = PasswordHasher(rounds=8)
        digest = hasher.hash("s3cret")
        assert digest.startswith("$2b$08$")
        assert hasher.verify("s3cret", digest)
        assert not hasher.verify("wrong", digest)

    def test_verify_malformed_digest(self):
        hasher = PasswordHasher(rounds=4)
        assert hasher.verify("s3cret", "not-a-bcrypt-hash") is False
        assert hasher.verify("s3cret", "") is False
        assert hasher.verify(None, "$2b$04$abc") is False

    def test_long_and_unicode_passwords(self):
        """Inputs past bcrypt's 72-byte window still hash."""
        hasher = PasswordHasher(rounds=4)
        long_password = "mật khẩu " * 20
        digest = hasher.hash(long_password)
        assert hasher.verify(long_password, digest)

    def test_empty_password_hashes(self):
        hasher = PasswordHasher(rounds=4)
        assert hasher.verify("", hasher.hash(""))


class TestJWTService:
    """Tests for bearer token issue and verification."""

    def test_round_trip_claims(self):
        service = JWTService(get_settings())
        token = service.create_token("user-1", "a@x.com", "A")
        payload = service.decode_token(token)
        assert payload["uid"] == "user-1"
        assert payload["email"] == "a@x.com"
        assert payload["name"] == "A"

    def test_expires_after_seven_days(self):
        service = JWTService(get_settings())
        payload = service.decode_token(service.create_token("user-1", "a@x.com", "A"))
        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    def test_expired_token(self):
        expired = jwt.encode(
            {"uid": "user-1", "exp": datetime.now(timezone.utc) - timedelta(seconds=5)},
            "test-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            JWTService(get_settings()).decode_token(expired)

    def test_wrong_signature(self):
        other = JWTService(replace(get_settings(), JWT_SECRET="another-secret"))
        token = other.create_token("user-1", "a@x.com", "A")
        service = JWTService(get_settings())
        with pytest.raises(InvalidToken):
            service.decode_token(token)
        assert service.is_token_valid(token) is False

    def test_malformed_token(self):
        with pytest.raises(InvalidToken):
            JWTService(get_settings()).decode_token("garbage")


class TestMailer:
    """Tests for the optional SMTP mailer."""

    def test_unconfigured_settings_give_null_mailer(self):
        mailer = build_mailer(replace(get_settings(), SMTP_HOST=""))
        assert isinstance(mailer, NullMailer)
        mailer.send("a@x.com", "subject", "body")

    def test_configured_settings_give_smtp_mailer(self):
        settings = replace(
            get_settings(), SMTP_HOST="smtp.example.com", SMTP_PORT=587, SMTP_USER="bot@example.com", SMTP_PASS="pw"
        )
        mailer = build_mailer(settings)
        assert isinstance(mailer, SmtpMailer)
        assert mailer.sender == "bot@example.com"

    @patch("app.services.mailer.smtplib.SMTP")
    def test_smtp_send(self, mock_smtp_cls):
        smtp = mock_smtp_cls.return_value.__enter__.return_value
        smtp.has_extn.return_value = True

        SmtpMailer("smtp.example.com", 587, "bot", "pw", "noreply@example.com").send("a@x.com", "Hi", "Body")

        mock_smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "pw")
        msg = smtp.send_message.call_args[0][0]
        assert msg["To"] == "a@x.com"
        assert msg["From"] == "noreply@example.com"
        assert msg["Subject"] == "Hi"

    @patch("app.services.mailer.smtplib.SMTP")
    def test_smtp_failure_is_swallowed(self, mock_smtp_cls):
        smtp = mock_smtp_cls.return_value.__enter__.return_value
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        SmtpMailer("smtp.example.com", 587, "bot", "pw", "bot").send("a@x.com", "Hi", "Body")
        smtp.send_message.assert_not_called()

    @patch("app.services.mailer.smtplib.SMTP", side_effect=ConnectionRefusedError())
    def test_unreachable_relay_is_swallowed(self, mock_smtp_cls):
        SmtpMailer("smtp.example.com", 587, "bot", "pw", "bot").send("a@x.com", "Hi", "Body")
        mock_smtp_cls.assert_called_once()


class TestSettings:
    """Tests for configuration loading and validation."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("CORS_MODE", "ALLOWLIST")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("SMTP_PORT", "")
        settings = Settings.from_env()
        assert settings.PORT == 8080
        assert settings.CORS_MODE == "allowlist"
        assert settings.CORS_ORIGINS == ("https://a.example", "https://b.example")
        assert settings.SMTP_PORT == 0

    def test_missing_secret_is_fatal_outside_development(self):
        settings = Settings(JWT_SECRET="", APP_ENV="production")
        assert settings.jwt_secret == ""
        assert any("JWT_SECRET" in p for p in settings.validate())

    def test_development_uses_default_secret(self):
        settings = Settings(JWT_SECRET="", APP_ENV="development")
        assert settings.jwt_secret == "dev-secret"
        assert settings.validate() == []

    def test_unknown_cors_mode(self):
        assert Settings(JWT_SECRET="x", CORS_MODE="open").validate()

    def test_mail_sender_falls_back_to_smtp_user(self):
        assert Settings(SMTP_USER="bot@example.com").mail_sender == "bot@example.com"
        assert Settings(SMTP_USER="bot@example.com", MAIL_FROM="hi@example.com").mail_sender == "hi@example.com"

    def test_cors_options(self):
        from main import cors_options

        assert cors_options(Settings(CORS_MODE="wildcard")) == {"allow_origins": ["*"], "allow_credentials": False}
        allow = cors_options(Settings(CORS_MODE="allowlist", CORS_ORIGINS=("https://a.example",)))
        assert allow == {"allow_origins": ["https://a.example"], "allow_credentials": True}


class TestStores:
    """Tests for the user and reset gateways."""

    def test_insert_normalizes_email(self, db_session: Session):
        users = UserStore(db_session)
        user = users.insert(name="A", email=" A@X.com ", pass_hash="h")
        assert user.email == "a@x.com"
        assert user.approved is False
        assert user.created_at is not None
        assert len(user.id) == 36
        assert users.find_by_email("A@x.COM").id == user.id
        assert users.find_by_id(user.id).email == "a@x.com"

    def test_unique_email(self, db_session: Session):
        users = UserStore(db_session)
        users.insert(name="A", email="a@x.com", pass_hash="h")
        with pytest.raises(DuplicateEmailError):
            users.insert(name="B", email="A@X.COM", pass_hash="h")
        assert users.find_by_email("a@x.com").name == "A"

    def test_update_approved_counts_rows(self, db_session: Session):
        users = UserStore(db_session)
        users.insert(name="A", email="a@x.com", pass_hash="h")
        assert users.update_approved("A@X.COM") == 1
        assert users.update_approved("nobody@x.com") == 0
        assert users.find_by_email("a@x.com").approved is True

    def test_reset_rows(self, db_session: Session):
        resets = ResetStore(db_session)
        reset = resets.insert("A@X.com", "ab" * 24, datetime.utcnow() + timedelta(minutes=30))
        assert resets.find("a@x.com", "ab" * 24).id == reset.id
        assert resets.find("a@x.com", "cd" * 24) is None
        assert resets.find("a@x.com", None) is None
        assert not reset.is_expired()
        assert reset.is_expired(reset.expires_at)

        resets.delete(reset.id)
        assert resets.find("a@x.com", "ab" * 24) is None

    def test_sqlalchemy_errors_become_store_errors(self):
        db = MagicMock(spec=Session)
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        with pytest.raises(StoreError) as excinfo:
            UserStore(db).find_by_email("a@x.com")
        db.rollback.assert_called_once()
        assert isinstance(excinfo.value.cause, OperationalError)
        assert excinfo.value.message == "Internal error"
