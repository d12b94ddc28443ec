"""Admin router. Every endpoint requires an account with the admin role."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import require_admin
from services import admin as admin_service
from services.creations import delete_creation

router = APIRouter(dependencies=[Depends(require_admin)])


class RoleUpdateRequest(BaseModel):
    role: str


class SubscriptionUpdateRequest(BaseModel):
    subscription_status: str


@router.get("/users")
async def users(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.list_users(db, limit=limit, offset=offset)


@router.get("/creations")
async def creations(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.list_creations(db, limit=limit, offset=offset)


@router.get("/analytics")
async def analytics(db: AsyncSession = Depends(get_db)):
    return await admin_service.get_analytics(db)


@router.patch("/users/{user_id}/role")
async def change_role(
    user_id: str,
    request: RoleUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.update_user_role(user_id, db, role=request.role)
    return {"id": str(user.id), "role": user.role}


@router.patch("/users/{user_id}/subscription")
async def change_subscription(
    user_id: str,
    request: SubscriptionUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.update_user_subscription(user_id, db, status=request.subscription_status)
    return {"id": str(user.id), "subscription_status": user.subscription_status}


@router.delete("/users/{user_id}")
async def remove_user(user_id: str, db: AsyncSession = Depends(get_db)):
    await admin_service.delete_user(user_id, db)
    return {"ok": True}


@router.delete("/creations/{creation_id}")
async def remove_creation(creation_id: str, db: AsyncSession = Depends(get_db)):
    await delete_creation(creation_id, db)
    return {"ok": True}
