"""Creation persistence: a user's generated artifacts and their purchase flag."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.creation import CREATION_MODES, Creation
from models.user import User


logger = logging.getLogger(__name__)


def _as_uuid(value: Any, detail: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=detail) from exc


def serialize_creation(creation: Creation) -> Dict[str, Any]:
    return {
        "id": str(creation.id),
        "user_id": str(creation.user_id),
        "name": creation.name,
        "html": creation.html,
        "original_image": creation.original_image,
        "mode": creation.mode,
        "purchased": bool(creation.purchased),
        "created_at": creation.created_at.isoformat() if creation.created_at else None,
    }


async def get_creation(
    creation_id: Any,
    db: AsyncSession,
    *,
    user_id: Any = None,
    for_update: bool = False,
) -> Creation:
    """Load a creation, optionally scoped to its owner. Someone else's creation is reported as missing."""
    query = select(Creation).where(Creation.id == _as_uuid(creation_id, "Creation not found"))
    if user_id is not None:
        query = query.where(Creation.user_id == _as_uuid(user_id, "Creation not found"))
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    creation = result.scalar_one_or_none()
    if not creation:
        raise HTTPException(status_code=404, detail="Creation not found")
    return creation


async def get_user_creations(user_id: Any, db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Creation)
        .where(Creation.user_id == _as_uuid(user_id, "User not found"))
        .order_by(Creation.created_at.desc())
    )
    return [serialize_creation(creation) for creation in result.scalars().all()]


async def create_creation(
    db: AsyncSession,
    *,
    user_id: Any,
    name: str,
    html: str,
    mode: str = "web",
    original_image: Optional[str] = None,
) -> Creation:
    if mode not in CREATION_MODES:
        raise HTTPException(status_code=400, detail=f"Invalid mode: {mode}")
    if not (name or "").strip():
        raise HTTPException(status_code=400, detail="Creation name is required")

    owner = await db.get(User, _as_uuid(user_id, "User not found"))
    if not owner:
        raise HTTPException(status_code=404, detail="User not found")

    creation = Creation(
        id=uuid.uuid4(),
        user_id=owner.id,
        name=name.strip(),
        html=html,
        original_image=original_image or None,
        mode=mode,
        purchased=False,
    )
    db.add(creation)
    await db.commit()
    await db.refresh(creation)
    logger.info("create_creation user=%s creation=%s mode=%s", owner.id, creation.id, mode)
    return creation


async def update_creation(
    creation_id: Any,
    db: AsyncSession,
    *,
    user_id: Any = None,
    name: Optional[str] = None,
    purchased: Optional[bool] = None,
) -> Creation:
    """Apply the supplied fields only; with nothing to change the row is left untouched."""
    creation = await get_creation(creation_id, db, user_id=user_id)
    if name is None and purchased is None:
        return creation

    if name is not None:
        if not name.strip():
            raise HTTPException(status_code=400, detail="Creation name is required")
        creation.name = name.strip()
    if purchased is not None:
        creation.purchased = bool(purchased)

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("update_creation creation=%s purchased=%s", creation.id, creation.purchased)
    return creation


async def mark_creation_as_purchased(creation_id: Any, db: AsyncSession, *, user_id: Any = None) -> Creation:
    return await update_creation(creation_id, db, user_id=user_id, purchased=True)


async def delete_creation(creation_id: Any, db: AsyncSession, *, user_id: Any = None) -> None:
    """Delete a creation. Payment sessions pointing at it keep their row with creation_id cleared."""
    creation = await get_creation(creation_id, db, user_id=user_id)
    try:
        await db.delete(creation)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("delete_creation creation=%s", creation.id)
