"""Credits router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.credits import consume_credit, get_credit_balance, get_credit_history

router = APIRouter()


class ConsumeRequest(BaseModel):
    reason: str = "DOWNLOAD"
    creation_id: Optional[str] = None


@router.get("/balance")
async def credit_balance(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return {"credits": await get_credit_balance(auth.user_id, db)}


@router.get("/history")
async def credit_history(
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return {"transactions": await get_credit_history(auth.user_id, db, limit=limit)}


@router.post("/consume")
async def consume(
    request: ConsumeRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    balance = await consume_credit(auth.user_id, db, reason=request.reason, creation_id=request.creation_id)
    return {"ok": True, "credits": balance}
