"""Creations router: the caller's own generated artifacts."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.creations import (
    create_creation,
    delete_creation,
    get_user_creations,
    serialize_creation,
    update_creation,
)

router = APIRouter()


class CreationCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=500)
    html: str
    mode: str = "web"
    original_image: Optional[str] = None


class CreationUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=500)


@router.get("")
async def list_creations(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return {"creations": await get_user_creations(auth.user_id, db)}


@router.post("", status_code=201)
async def create(
    request: CreationCreateRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    creation = await create_creation(
        db,
        user_id=auth.user_id,
        name=request.name,
        html=request.html,
        mode=request.mode,
        original_image=request.original_image,
    )
    return serialize_creation(creation)


@router.patch("/{creation_id}")
async def rename(
    creation_id: str,
    request: CreationUpdateRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    # purchased is only ever set by spending a credit
    creation = await update_creation(creation_id, db, user_id=auth.user_id, name=request.name)
    return serialize_creation(creation)


@router.delete("/{creation_id}")
async def remove(
    creation_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await delete_creation(creation_id, db, user_id=auth.user_id)
    return {"ok": True}
