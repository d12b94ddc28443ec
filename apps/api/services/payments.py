"""Payment and payment-session bookkeeping."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.payment import PAYMENT_PROVIDERS, PAYMENT_STATUSES, PAYMENT_TYPES, Payment
from models.payment_session import PAYMENT_GATEWAYS, SESSION_STATUSES, SESSION_TYPES, PaymentSession


logger = logging.getLogger(__name__)


def _terminal(statuses) -> tuple:
    return tuple(status for status in statuses if status != "pending")


def generate_order_id(prefix: str = "FB") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def _amount(value: Any) -> Decimal:
    amount = Decimal(str(value)).quantize(Decimal("0.01"))
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be positive")
    return amount


async def record_payment(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    payment_type: str,
    amount: Any,
    provider: str = "stripe",
    provider_session_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Payment:
    if payment_type not in PAYMENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid payment type: {payment_type}")
    if provider not in PAYMENT_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Invalid payment provider: {provider}")

    payment = Payment(
        user_id=user_id,
        type=payment_type,
        amount=_amount(amount),
        provider=provider,
        provider_session_id=provider_session_id,
        status="pending",
        payment_metadata=metadata,
    )
    db.add(payment)
    await db.commit()
    logger.info("record_payment user=%s payment=%s provider=%s", user_id, payment.id, provider)
    return payment


async def update_payment_status(payment_id: uuid.UUID, db: AsyncSession, *, status: str) -> Payment:
    """Move a pending payment to a terminal status."""
    if status not in _terminal(PAYMENT_STATUSES):
        raise HTTPException(status_code=400, detail=f"Invalid payment status: {status}")

    result = await db.execute(select(Payment).where(Payment.id == payment_id).with_for_update())
    payment = result.scalar_one_or_none()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if payment.status != "pending":
        raise HTTPException(
            status_code=409,
            detail=f"Payment already {payment.status}; cannot move to {status}",
        )

    payment.status = status
    await db.commit()
    logger.info("update_payment_status payment=%s status=%s", payment.id, status)
    return payment


async def create_payment_session(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    gateway: str,
    amount: Any,
    session_type: str,
    currency: str = "USD",
    creation_id: Optional[uuid.UUID] = None,
    order_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> PaymentSession:
    if gateway not in PAYMENT_GATEWAYS:
        raise HTTPException(status_code=400, detail=f"Unsupported payment gateway: {gateway}")
    if session_type not in SESSION_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid session type: {session_type}")

    session = PaymentSession(
        id=f"ps_{uuid.uuid4().hex}",
        user_id=user_id,
        gateway=gateway,
        amount=_amount(amount),
        currency=(currency or "USD").upper(),
        order_id=order_id or generate_order_id(),
        creation_id=creation_id,
        type=session_type,
        status="pending",
        session_metadata=metadata,
    )
    db.add(session)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail=f"Order id already used: {session.order_id}") from exc

    logger.info(
        "create_payment_session user=%s gateway=%s order=%s type=%s",
        user_id,
        gateway,
        session.order_id,
        session_type,
    )
    return session


async def _pending_session(order_id: str, db: AsyncSession) -> PaymentSession:
    result = await db.execute(
        select(PaymentSession).where(PaymentSession.order_id == order_id).with_for_update()
    )
    session = result.scalar_one_or_none()
    if not session:
        raise HTTPException(status_code=404, detail="Payment session not found")
    if session.status != "pending":
        raise HTTPException(status_code=409, detail=f"Payment session already {session.status}")
    return session


async def complete_payment_session(
    order_id: str,
    db: AsyncSession,
    *,
    transaction_id: Optional[str] = None,
) -> PaymentSession:
    session = await _pending_session(order_id, db)
    session.status = "completed"
    session.transaction_id = transaction_id
    session.completed_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("complete_payment_session order=%s transaction=%s", order_id, transaction_id)
    return session


async def close_payment_session(order_id: str, db: AsyncSession, *, status: str) -> PaymentSession:
    """Mark a pending session failed or cancelled."""
    if status not in _terminal(SESSION_STATUSES) or status == "completed":
        raise HTTPException(status_code=400, detail=f"Invalid session status: {status}")

    session = await _pending_session(order_id, db)
    session.status = status
    await db.commit()
    logger.info("close_payment_session order=%s status=%s", order_id, status)
    return session
