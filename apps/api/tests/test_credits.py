from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from models.credit_transaction import CreditTransaction
from models.user import User
from services.creations import create_creation, get_creation
from services.credits import (
    add_credits,
    consume_credit,
    create_user,
    get_credit_balance,
    get_credit_history,
    reconcile_credits,
    update_user_plan,
)


async def _ledger(db, user_id):
    result = await db.execute(select(CreditTransaction).where(CreditTransaction.user_id == user_id))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_free_signup_gets_initial_credits_and_single_ledger_row(db_session):
    user = await create_user(db_session, email="Alice@Example.com", password_hash="hash")

    assert user.email == "alice@example.com"
    assert user.plan == "FREE"
    assert user.credits == 3

    entries = await _ledger(db_session, user.id)
    assert len(entries) == 1
    assert entries[0].change == 3
    assert entries[0].reason == "INITIAL_FREE"


@pytest.mark.asyncio
async def test_non_free_plan_with_zero_credits_skips_grant(db_session):
    user = await create_user(db_session, email="pro@example.com", password_hash="hash", plan="PRO")

    assert user.credits == 0
    assert await _ledger(db_session, user.id) == []


@pytest.mark.asyncio
async def test_explicit_starting_credits_skip_grant(db_session):
    user = await create_user(db_session, email="seeded@example.com", password_hash="hash", credits=10)

    assert user.credits == 10
    assert await _ledger(db_session, user.id) == []


@pytest.mark.asyncio
async def test_duplicate_email_rolls_back_without_orphan_ledger_rows(db_session):
    await create_user(db_session, email="dup@example.com", password_hash="hash")

    with pytest.raises(HTTPException) as exc_info:
        await create_user(db_session, email="dup@example.com", password_hash="other")
    assert exc_info.value.status_code == 409

    users = await db_session.execute(select(func.count()).select_from(User))
    ledger = await db_session.execute(select(func.count()).select_from(CreditTransaction))
    assert users.scalar() == 1
    assert ledger.scalar() == 1


@pytest.mark.asyncio
async def test_consume_then_reconcile_matches_ledger(db_session):
    user = await create_user(db_session, email="a@example.com", password_hash="hash")

    balance = await consume_credit(user.id, db_session)

    assert balance == 2
    assert await get_credit_balance(user.id, db_session) == 2
    reconciliation = await reconcile_credits(user.id, db_session)
    assert reconciliation == {"balance": 2, "ledger_total": 2, "consistent": True}


@pytest.mark.asyncio
async def test_consume_with_empty_balance_is_rejected(db_session):
    user = await create_user(db_session, email="broke@example.com", password_hash="hash", plan="PAY_PER_USE")
    user_id = user.id

    with pytest.raises(HTTPException) as exc_info:
        await consume_credit(user_id, db_session)

    assert exc_info.value.status_code == 402
    assert await get_credit_balance(user_id, db_session) == 0
    assert await _ledger(db_session, user_id) == []


@pytest.mark.asyncio
async def test_consume_rejects_grant_reason(db_session):
    user = await create_user(db_session, email="b@example.com", password_hash="hash")

    with pytest.raises(HTTPException) as exc_info:
        await consume_credit(user.id, db_session, reason="ONE_OFF_PURCHASE")
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_add_credits_validates_amount_and_reason(db_session):
    user = await create_user(db_session, email="c@example.com", password_hash="hash")

    with pytest.raises(HTTPException):
        await add_credits(user.id, db_session, amount=0, reason="ONE_OFF_PURCHASE")
    with pytest.raises(HTTPException):
        await add_credits(user.id, db_session, amount=5, reason="DOWNLOAD")

    balance = await add_credits(user.id, db_session, amount=40, reason="SUBSCRIPTION_MONTHLY")
    assert balance == 43
    assert (await reconcile_credits(user.id, db_session))["consistent"] is True


@pytest.mark.asyncio
async def test_reconcile_reports_drift(db_session):
    user = await create_user(db_session, email="drift@example.com", password_hash="hash")
    user.credits = 7
    await db_session.commit()

    reconciliation = await reconcile_credits(user.id, db_session)
    assert reconciliation["consistent"] is False
    assert reconciliation["ledger_total"] == 3


@pytest.mark.asyncio
async def test_history_is_newest_first_and_limited(db_session):
    user = await create_user(db_session, email="h@example.com", password_hash="hash")
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for offset in range(1, 4):
        db_session.add(
            CreditTransaction(
                user_id=user.id,
                change=1,
                reason="ONE_OFF_PURCHASE",
                created_at=base + timedelta(days=offset),
            )
        )
    await db_session.commit()

    history = await get_credit_history(user.id, db_session, limit=2)

    assert len(history) == 2
    assert history[0]["created_at"] > history[1]["created_at"]
    assert {entry["reason"] for entry in history} <= {"ONE_OFF_PURCHASE", "INITIAL_FREE"}


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(db_session):
    with pytest.raises(HTTPException) as exc_info:
        await get_credit_balance("00000000-0000-0000-0000-000000000000", db_session)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        await get_credit_balance("not-a-uuid", db_session)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_update_plan_to_pro_opens_thirty_day_period(db_session):
    user = await create_user(db_session, email="p@example.com", password_hash="hash")

    user = await update_user_plan(user.id, db_session, plan="PRO")

    assert user.plan == "PRO"
    assert user.pro_since is not None
    assert user.pro_until - user.pro_since == timedelta(days=30)

    user = await update_user_plan(user.id, db_session, plan="FREE")
    assert user.pro_since is None
    assert user.pro_until is None


@pytest.mark.asyncio
async def test_update_plan_rejects_unknown_plan(db_session):
    user = await create_user(db_session, email="q@example.com", password_hash="hash")

    with pytest.raises(HTTPException) as exc_info:
        await update_user_plan(user.id, db_session, plan="ENTERPRISE")
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_leaving_pro_clears_the_whole_period(db_session):
    user = await create_user(db_session, email="r@example.com", password_hash="hash")
    await update_user_plan(user.id, db_session, plan="PRO")

    user = await update_user_plan(
        user.id,
        db_session,
        plan="PAY_PER_USE",
        pro_until=datetime.now(timezone.utc) + timedelta(days=5),
    )

    assert user.plan == "PAY_PER_USE"
    assert user.pro_since is None
    assert user.pro_until is None


@pytest.mark.asyncio
async def test_consuming_for_a_creation_marks_it_purchased(db_session):
    user = await create_user(db_session, email="buyer@example.com", password_hash="hash")
    creation = await create_creation(db_session, user_id=user.id, name="Landing", html="<html></html>")

    assert await consume_credit(user.id, db_session, creation_id=str(creation.id)) == 2

    assert (await get_creation(creation.id, db_session)).purchased is True
    entries = await _ledger(db_session, user.id)
    assert sorted(entry.reason for entry in entries) == ["DOWNLOAD", "INITIAL_FREE"]


@pytest.mark.asyncio
async def test_consuming_for_another_users_creation_spends_nothing(db_session):
    owner = await create_user(db_session, email="owner@example.com", password_hash="hash")
    other = await create_user(db_session, email="other@example.com", password_hash="hash")
    creation = await create_creation(db_session, user_id=owner.id, name="Logo", html="<svg/>", mode="logo")
    other_id, creation_id = other.id, creation.id

    with pytest.raises(HTTPException) as exc_info:
        await consume_credit(other_id, db_session, creation_id=creation_id)

    assert exc_info.value.status_code == 404
    assert await get_credit_balance(other_id, db_session) == 3
    assert (await get_creation(creation_id, db_session)).purchased is False


@pytest.mark.asyncio
async def test_failed_spend_leaves_creation_locked(db_session):
    user = await create_user(db_session, email="empty@example.com", password_hash="hash", plan="PRO")
    creation = await create_creation(db_session, user_id=user.id, name="App", html="<html></html>", mode="mobile")
    user_id, creation_id = user.id, creation.id

    with pytest.raises(HTTPException) as exc_info:
        await consume_credit(user_id, db_session, creation_id=creation_id)

    assert exc_info.value.status_code == 402
    assert (await get_creation(creation_id, db_session)).purchased is False
    assert await _ledger(db_session, user_id) == []
