"""JWT Token Service."""

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from jose import JWTError, jwt

from app.config import Settings, get_app_settings
from app.errors import InvalidToken


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings) -> None:
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_days = settings.JWT_EXPIRE_DAYS

    def create_token(self, user_id: str, email: str, name: str) -> str:
        """Create a JWT token for the given user."""
        now = datetime.now(timezone.utc)
        payload = {
            "uid": user_id,
            "email": email,
            "name": name,
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token. Raises InvalidToken if it cannot be trusted."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidToken(str(e)) from e
        if not payload.get("uid"):
            raise InvalidToken("Token has no uid claim")
        return payload

    def is_token_valid(self, token: str) -> bool:
        """Check if a token is valid."""
        try:
            self.decode_token(token)
        except InvalidToken:
            return False
        return True


def get_jwt_service(settings: Settings = Depends(get_app_settings)) -> JWTService:
    """Build the JWT service for the current settings."""
    return JWTService(settings)
