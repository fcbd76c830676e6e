"""Authentication dependencies for FastAPI routes."""

import re
from dataclasses import dataclass

from fastapi import Depends, Request

from app.errors import AuthError, InvalidToken
from app.services.jwt import JWTService, get_jwt_service

BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: str
    email: str
    name: str


def get_current_user(
    request: Request,
    jwt_service: JWTService = Depends(get_jwt_service),
) -> CurrentUser:
    """Extract and validate the user from the Bearer token. Raises 401 if missing or invalid."""
    match = BEARER_RE.match(request.headers.get("Authorization", "").strip())
    if not match:
        raise AuthError("Missing token", status_code=401)

    try:
        payload = jwt_service.decode_token(match.group(1).strip())
    except InvalidToken:
        raise AuthError("Invalid token", status_code=401) from None

    return CurrentUser(
        user_id=str(payload["uid"]),
        email=payload.get("email", ""),
        name=payload.get("name", ""),
    )
