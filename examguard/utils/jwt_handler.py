"""
JWT Token Handler Utilities

Identity is issued by an external auth service; this module only needs to
verify bearer tokens and, for local tooling and tests, mint them.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import jwt

from examguard.config import settings


JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = settings.JWT_EXPIRATION_HOURS


def create_access_token(user_id: str, role: str, secret: Optional[str] = None) -> str:
    """
    Create an access token for a user.

    Args:
        user_id: The user's id string
        role: User role (student, teacher, admin)
        secret: Signing secret (defaults to settings.JWT_SECRET)

    Returns:
        Encoded JWT
    """
    now = datetime.utcnow()

    payload = {
        "user_id": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    }

    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is invalid
    """
    payload = jwt.decode(token, secret or settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])

    if payload.get("type") and payload.get("type") != "access":
        raise jwt.InvalidTokenError("Invalid token type. Expected access")

    if not payload.get("user_id") or not payload.get("role"):
        raise jwt.InvalidTokenError("Token is missing user_id or role")

    return payload
