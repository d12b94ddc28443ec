"""Authentication dependencies resolving the calling account."""

from dataclasses import dataclass
from typing import Optional
import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: str
    email: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Resolve the account behind the Bearer token.

    Role and email come from the users row rather than the token, so a deleted
    account or a revoked admin role takes effect on the next request.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")
    try:
        user_id, _ = decode_session_token(credentials.credentials)
        user = await db.get(User, uuid.UUID(user_id))
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return AuthContext(user_id=str(user.id), email=user.email, role=user.role)


async def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return auth
