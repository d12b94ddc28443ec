from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from models.creation import Creation
from models.payment_session import PaymentSession
from services.creations import (
    create_creation,
    delete_creation,
    get_user_creations,
    mark_creation_as_purchased,
    update_creation,
)
from services.credits import create_user


@pytest.mark.asyncio
async def test_create_creation_starts_unpurchased(db_session):
    user = await create_user(db_session, email="maker@example.com", password_hash="hash")

    creation = await create_creation(
        db_session,
        user_id=user.id,
        name="  Portfolio  ",
        html="<html></html>",
        mode="web",
        original_image="data:image/png;base64,AAAA",
    )

    assert creation.name == "Portfolio"
    assert creation.purchased is False
    assert creation.created_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs,status",
    [
        ({"mode": "desktop"}, 400),
        ({"name": "   "}, 400),
        ({"user_id": "00000000-0000-0000-0000-000000000000"}, 404),
    ],
)
async def test_create_creation_validates_input(db_session, kwargs, status):
    user = await create_user(db_session, email="v@example.com", password_hash="hash")
    params = {"user_id": user.id, "name": "Site", "html": "<html></html>", **kwargs}

    with pytest.raises(HTTPException) as exc_info:
        await create_creation(db_session, **params)
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_user_creations_are_newest_first_and_scoped(db_session):
    user = await create_user(db_session, email="list@example.com", password_hash="hash")
    other = await create_user(db_session, email="else@example.com", password_hash="hash")
    base = datetime(2025, 6, 1, tzinfo=timezone.utc)
    db_session.add_all(
        [
            Creation(user_id=user.id, name="first", html="<p>1</p>", created_at=base),
            Creation(user_id=user.id, name="second", html="<p>2</p>", created_at=base + timedelta(days=1)),
            Creation(user_id=other.id, name="theirs", html="<p>3</p>", created_at=base + timedelta(days=2)),
        ]
    )
    await db_session.commit()

    creations = await get_user_creations(user.id, db_session)

    assert [creation["name"] for creation in creations] == ["second", "first"]
    assert all(creation["user_id"] == str(user.id) for creation in creations)
    assert creations[0]["purchased"] is False


@pytest.mark.asyncio
async def test_update_creation_only_touches_supplied_fields(db_session):
    user = await create_user(db_session, email="upd@example.com", password_hash="hash")
    creation = await create_creation(db_session, user_id=user.id, name="Draft", html="<html></html>")

    unchanged = await update_creation(creation.id, db_session, user_id=user.id)
    assert unchanged.name == "Draft"

    renamed = await update_creation(creation.id, db_session, user_id=user.id, name="Final")
    assert renamed.name == "Final"
    assert renamed.purchased is False

    purchased = await mark_creation_as_purchased(creation.id, db_session)
    assert purchased.purchased is True
    assert purchased.name == "Final"


@pytest.mark.asyncio
async def test_other_users_creation_is_not_found(db_session):
    owner = await create_user(db_session, email="own@example.com", password_hash="hash")
    intruder = await create_user(db_session, email="in@example.com", password_hash="hash")
    creation = await create_creation(db_session, user_id=owner.id, name="Mine", html="<html></html>")

    with pytest.raises(HTTPException) as exc_info:
        await update_creation(creation.id, db_session, user_id=intruder.id, name="Stolen")
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        await delete_creation(creation.id, db_session, user_id=intruder.id)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        await delete_creation("not-a-uuid", db_session)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_deleting_creation_keeps_payment_session_without_link(db_session):
    user = await create_user(db_session, email="del@example.com", password_hash="hash")
    creation = await create_creation(db_session, user_id=user.id, name="Gone", html="<html></html>")
    db_session.add(
        PaymentSession(
            id=f"ps_{uuid.uuid4().hex}",
            user_id=user.id,
            gateway="stripe",
            amount=Decimal("3.99"),
            order_id="FB-del",
            creation_id=creation.id,
            type="onetime",
        )
    )
    await db_session.commit()

    await delete_creation(creation.id, db_session, user_id=user.id)
    db_session.expunge_all()

    assert await get_user_creations(user.id, db_session) == []
    result = await db_session.execute(select(PaymentSession.creation_id).where(PaymentSession.order_id == "FB-del"))
    assert result.scalar_one() is None
