"""Credit balance and ledger helpers.

``users.credits`` holds the spendable balance; ``credit_transactions`` is the
append-only audit trail of every change to it. Each mutation below writes both
in one transaction so the two never drift apart.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.credit_transaction import CreditTransaction
from models.user import PLANS, ROLES, User
from schema_sql import FREE_INITIAL_CREDITS
from services.creations import get_creation


logger = logging.getLogger(__name__)

GRANT_REASONS = ("INITIAL_FREE", "ONE_OFF_PURCHASE", "SUBSCRIPTION_MONTHLY")
CONSUME_REASONS = ("DOWNLOAD",)


def _as_uuid(user_id: Any) -> uuid.UUID:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc


async def _get_user(user_id: Any, db: AsyncSession, *, for_update: bool = False) -> User:
    query = select(User).where(User.id == _as_uuid(user_id))
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _should_grant_free_credits(plan: str, credits: int) -> bool:
    return credits == 0 and plan == "FREE"


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password_hash: str,
    role: str = "user",
    plan: str = "FREE",
    credits: int = 0,
    subscription_status: str = "free",
) -> User:
    """Insert a user and, for a zero-credit FREE signup, its INITIAL_FREE grant.

    Both rows are committed together or not at all. The stored balance is already
    non-zero, so the database-side initialize_free_credits trigger stays idle.
    """
    if plan not in PLANS:
        raise HTTPException(status_code=400, detail=f"Invalid plan: {plan}")
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role: {role}")

    grant = FREE_INITIAL_CREDITS
    apply_grant = _should_grant_free_credits(plan, int(credits))

    user = User(
        id=uuid.uuid4(),
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        plan=plan,
        credits=grant if apply_grant else int(credits),
        subscription_status=subscription_status,
    )
    try:
        db.add(user)
        await db.flush()
        if apply_grant:
            db.add(CreditTransaction(user_id=user.id, change=grant, reason="INITIAL_FREE"))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User already exists") from exc
    except Exception:
        await db.rollback()
        raise

    logger.info("create_user user=%s plan=%s initial_credits=%s", user.id, plan, user.credits)
    return user


async def get_credit_balance(user_id: Any, db: AsyncSession) -> int:
    user = await _get_user(user_id, db)
    return int(user.credits or 0)


async def add_credits(user_id: Any, db: AsyncSession, *, amount: int, reason: str) -> int:
    """Credit the account and record the grant; returns the new balance."""
    if int(amount) <= 0:
        raise HTTPException(status_code=400, detail="Credit amount must be positive")
    if reason not in GRANT_REASONS:
        raise HTTPException(status_code=400, detail=f"Invalid reason: {reason}")

    try:
        user = await _get_user(user_id, db, for_update=True)
        user.credits = int(user.credits or 0) + int(amount)
        db.add(CreditTransaction(user_id=user.id, change=int(amount), reason=reason))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("add_credits user=%s amount=%s reason=%s balance=%s", user.id, amount, reason, user.credits)
    return int(user.credits)


async def consume_credit(
    user_id: Any,
    db: AsyncSession,
    *,
    reason: str = "DOWNLOAD",
    creation_id: Any = None,
) -> int:
    """Spend one credit under a row lock; returns the new balance.

    With ``creation_id`` the user's creation is marked purchased in the same
    transaction, so a failed spend never unlocks it.
    """
    if reason not in CONSUME_REASONS:
        raise HTTPException(status_code=400, detail=f"Invalid reason: {reason}")

    try:
        user = await _get_user(user_id, db, for_update=True)
        creation = None
        if creation_id is not None:
            creation = await get_creation(creation_id, db, user_id=user.id, for_update=True)

        current_balance = int(user.credits or 0)
        if current_balance <= 0:
            raise HTTPException(status_code=402, detail="Insufficient credits")

        user.credits = current_balance - 1
        db.add(CreditTransaction(user_id=user.id, change=-1, reason=reason))
        if creation is not None:
            creation.purchased = True
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "consume_credit user=%s reason=%s creation=%s balance=%s",
        user.id,
        reason,
        creation.id if creation is not None else None,
        user.credits,
    )
    return int(user.credits)


async def get_credit_history(user_id: Any, db: AsyncSession, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    page_size = max(1, int(limit or settings.CREDIT_HISTORY_LIMIT))
    result = await db.execute(
        select(CreditTransaction)
        .where(CreditTransaction.user_id == _as_uuid(user_id))
        .order_by(CreditTransaction.created_at.desc())
        .limit(page_size)
    )
    return [
        {
            "id": str(entry.id),
            "change": entry.change,
            "reason": entry.reason,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry in result.scalars().all()
    ]


async def update_user_plan(
    user_id: Any,
    db: AsyncSession,
    *,
    plan: str,
    pro_until: Optional[datetime] = None,
) -> User:
    """Switch plans. PRO opens a billing period; any other plan clears pro_since and pro_until."""
    if plan not in PLANS:
        raise HTTPException(status_code=400, detail=f"Invalid plan: {plan}")

    try:
        user = await _get_user(user_id, db)
        if plan == "PRO":
            now = datetime.now(timezone.utc)
            user.pro_since = now
            user.pro_until = pro_until or now + timedelta(days=int(settings.PRO_PERIOD_DAYS))
        else:
            user.pro_since = None
            user.pro_until = None
        user.plan = plan
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("update_user_plan user=%s plan=%s pro_until=%s", user.id, plan, user.pro_until)
    return user


async def reconcile_credits(user_id: Any, db: AsyncSession) -> Dict[str, Any]:
    """Compare the cached balance against the ledger total."""
    user = await _get_user(user_id, db)
    result = await db.execute(
        select(func.coalesce(func.sum(CreditTransaction.change), 0)).where(CreditTransaction.user_id == user.id)
    )
    ledger_total = int(result.scalar() or 0)
    balance = int(user.credits or 0)
    if ledger_total != balance:
        logger.warning("Credit ledger drift for user %s: balance=%s ledger=%s", user.id, balance, ledger_total)
    return {
        "balance": balance,
        "ledger_total": ledger_total,
        "consistent": ledger_total == balance,
    }
