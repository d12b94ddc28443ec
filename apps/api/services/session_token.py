"""Signed bearer tokens identifying the account behind an API call."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "fb_session"


def create_session_token(
    user_id: Any,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> Dict[str, Any]:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(hours=max(int(expires_hours or settings.JWT_EXPIRATION_HOURS), 1))
    expires_at = int((issued_at + lifetime).timestamp())

    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "type": SESSION_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": expires_at,
    }
    if email:
        claims["email"] = email

    return {
        "token": jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        "expires_at": expires_at,
    }


def decode_session_token(token: str) -> Tuple[str, Optional[str]]:
    """Return (user_id, email) from a valid token; raise ValueError otherwise."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    if claims.get("type") != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")
    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise ValueError("Session token missing subject.")
    return user_id, claims.get("email") or None
