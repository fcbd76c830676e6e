"""Configuration settings for the Simple8 auth API."""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv
from fastapi import Request

load_dotenv()

DEV_JWT_SECRET = "dev-secret"
CORS_MODES = ("wildcard", "allowlist")
DEFAULT_CORS_ORIGINS = (
    "https://phongnews.netlify.app",
    "http://localhost:5173",
    "http://localhost:3000",
)


def _split_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings. Built once at startup and passed to each component."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    APP_ENV: str = "production"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./simple8_auth.db"

    # JWT
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7

    # Passwords and reset tokens
    BCRYPT_ROUNDS: int = 8
    RESET_TOKEN_TTL_MINUTES: int = 30

    # Admin approval
    ADMIN_EMAIL: str = ""
    ADMIN_CODE: str = ""

    # Mail
    SMTP_HOST: str = ""
    SMTP_PORT: int = 0
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    MAIL_FROM: str = ""

    # CORS
    CORS_MODE: str = "wildcard"
    CORS_ORIGINS: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment."""
        return cls(
            HOST=os.getenv("HOST", "0.0.0.0"),
            PORT=int(os.getenv("PORT", "3000")),
            APP_ENV=os.getenv("APP_ENV", "production").lower(),
            DEBUG=os.getenv("DEBUG", "false").lower() == "true",
            DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./simple8_auth.db"),
            JWT_SECRET=os.getenv("JWT_SECRET", ""),
            JWT_ALGORITHM=os.getenv("JWT_ALGORITHM", "HS256"),
            JWT_EXPIRE_DAYS=int(os.getenv("JWT_EXPIRE_DAYS", "7")),
            BCRYPT_ROUNDS=int(os.getenv("BCRYPT_ROUNDS", "8")),
            RESET_TOKEN_TTL_MINUTES=int(os.getenv("RESET_TOKEN_TTL_MINUTES", "30")),
            ADMIN_EMAIL=os.getenv("ADMIN_EMAIL", ""),
            ADMIN_CODE=os.getenv("ADMIN_CODE", ""),
            SMTP_HOST=os.getenv("SMTP_HOST", ""),
            SMTP_PORT=int(os.getenv("SMTP_PORT") or "0"),
            SMTP_USER=os.getenv("SMTP_USER", ""),
            SMTP_PASS=os.getenv("SMTP_PASS", ""),
            MAIL_FROM=os.getenv("MAIL_FROM", ""),
            CORS_MODE=os.getenv("CORS_MODE", "wildcard").lower(),
            CORS_ORIGINS=_split_origins(os.getenv("CORS_ORIGINS")),
        )

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def jwt_secret(self) -> str:
        """Signing key. The fixed development key is only ever used in development."""
        if self.JWT_SECRET:
            return self.JWT_SECRET
        return DEV_JWT_SECRET if self.is_development else ""

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    @property
    def mail_sender(self) -> str:
        return self.MAIL_FROM or self.SMTP_USER

    def validate(self) -> list[str]:
        """Validate settings and return the list of fatal problems."""
        errors = []
        if not self.jwt_secret:
            errors.append("JWT_SECRET is not set (only APP_ENV=development may run with the default key)")
        if self.CORS_MODE not in CORS_MODES:
            errors.append(f"CORS_MODE must be one of {', '.join(CORS_MODES)}, got {self.CORS_MODE!r}")
        if self.BCRYPT_ROUNDS < 4 or self.BCRYPT_ROUNDS > 31:
            errors.append("BCRYPT_ROUNDS must be between 4 and 31")
        if self.RESET_TOKEN_TTL_MINUTES <= 0:
            errors.append("RESET_TOKEN_TTL_MINUTES must be positive")
        if self.JWT_EXPIRE_DAYS <= 0:
            errors.append("JWT_EXPIRE_DAYS must be positive")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return getattr(request.app.state, "settings", None) or get_settings()
