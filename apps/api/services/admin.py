"""Back-office operations over accounts and creations."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
import uuid

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.creation import Creation
from models.user import ROLES, SUBSCRIPTION_STATUSES, User


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
RECENT_WINDOW_DAYS = 7


def _page(limit: Any, offset: Any) -> tuple:
    return max(1, min(int(limit or DEFAULT_PAGE_SIZE), 500)), max(0, int(offset or 0))


async def _get_user(user_id: Any, db: AsyncSession) -> User:
    try:
        key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    user = await db.get(User, key)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def list_users(db: AsyncSession, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> Dict[str, Any]:
    """Newest accounts first, each with its creation count."""
    page_size, start = _page(limit, offset)
    creations_count = (
        select(func.count(Creation.id)).where(Creation.user_id == User.id).correlate(User).scalar_subquery()
    )
    result = await db.execute(
        select(User, creations_count.label("creations_count"))
        .order_by(User.created_at.desc())
        .limit(page_size)
        .offset(start)
    )
    total = await db.scalar(select(func.count(User.id)))

    users = []
    for user, count in result.all():
        users.append(
            {
                "id": str(user.id),
                "email": user.email,
                "role": user.role,
                "plan": user.plan,
                "credits": user.credits,
                "subscription_status": user.subscription_status,
                "daily_usage_count": user.daily_usage_count,
                "last_reset_date": user.last_reset_date.isoformat() if user.last_reset_date else None,
                "created_at": user.created_at.isoformat() if user.created_at else None,
                "creations_count": int(count or 0),
            }
        )
    return {"users": users, "total": int(total or 0), "limit": page_size, "offset": start}


async def list_creations(db: AsyncSession, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> Dict[str, Any]:
    """Newest creations first, with the owner's email; the artifact body is left out."""
    page_size, start = _page(limit, offset)
    result = await db.execute(
        select(Creation, User.email)
        .join(User, Creation.user_id == User.id)
        .order_by(Creation.created_at.desc())
        .limit(page_size)
        .offset(start)
    )
    total = await db.scalar(select(func.count(Creation.id)))

    creations = [
        {
            "id": str(creation.id),
            "name": creation.name,
            "mode": creation.mode,
            "purchased": bool(creation.purchased),
            "created_at": creation.created_at.isoformat() if creation.created_at else None,
            "user_id": str(creation.user_id),
            "user_email": email,
        }
        for creation, email in result.all()
    ]
    return {"creations": creations, "total": int(total or 0), "limit": page_size, "offset": start}


async def get_analytics(db: AsyncSession) -> Dict[str, int]:
    since = datetime.now(timezone.utc) - timedelta(days=RECENT_WINDOW_DAYS)

    async def count(query) -> int:
        return int(await db.scalar(query) or 0)

    return {
        "total_users": await count(select(func.count(User.id))),
        "pro_users": await count(select(func.count(User.id)).where(User.subscription_status == "pro")),
        "total_creations": await count(select(func.count(Creation.id))),
        "purchased_creations": await count(select(func.count(Creation.id)).where(Creation.purchased.is_(True))),
        "total_generations": await count(select(func.coalesce(func.sum(User.daily_usage_count), 0))),
        "new_users_7d": await count(select(func.count(User.id)).where(User.created_at > since)),
        "new_creations_7d": await count(select(func.count(Creation.id)).where(Creation.created_at > since)),
    }


async def update_user_role(user_id: Any, db: AsyncSession, *, role: str) -> User:
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role: {role}")

    user = await _get_user(user_id, db)
    user.role = role
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("update_user_role user=%s role=%s", user.id, role)
    return user


async def update_user_subscription(user_id: Any, db: AsyncSession, *, status: str) -> User:
    if status not in SUBSCRIPTION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid subscription status: {status}")

    user = await _get_user(user_id, db)
    user.subscription_status = status
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("update_user_subscription user=%s status=%s", user.id, status)
    return user


async def delete_user(user_id: Any, db: AsyncSession) -> None:
    """Delete an account; the database cascades to its creations, ledger, payments and sessions."""
    user = await _get_user(user_id, db)
    try:
        await db.delete(user)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.warning("delete_user user=%s email=%s", user.id, user.email)
