"""Integration tests for wallet_service member endpoints."""

import uuid

import pytest
from tests.conftest import DEFAULT_USER_ID, make_member_user, override_auth
from tests.factories import WalletFactory


async def _seed_wallet(db_session, balance=2000, user_id=DEFAULT_USER_ID):
    wallet = WalletFactory.create(user_id=user_id, balance=balance)
    db_session.add(wallet)
    await db_session.commit()
    return wallet


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_wallet_endpoint(wallet_client, db_session):
    """POST /wallet/create: creates wallet with zero starting balance."""
    response = await wallet_client.post("/wallet/create")

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["balance"] == 0
    assert data["frozen_balance"] == 0
    assert data["user_id"] == DEFAULT_USER_ID
    assert "id" in data


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_wallet_twice_returns_same_wallet(wallet_client, db_session):
    first = await wallet_client.post("/wallet/create")
    second = await wallet_client.post("/wallet/create")

    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_my_wallet(wallet_client, db_session):
    """GET /wallet/me: returns balances and lifetime totals."""
    await _seed_wallet(db_session, balance=1500)

    response = await wallet_client.get("/wallet/me")

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == 1500
    assert data["spendable_balance"] == 1500
    assert data["total_earned"] == 1500


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_my_wallet_creates_on_first_visit(wallet_client, db_session):
    """GET /wallet/me: a new user gets an empty wallet and today's limits."""
    from services.wallet_service.app.main import app

    user = make_member_user(user_id=f"no-wallet-{uuid.uuid4().hex[:8]}")
    with override_auth(app, user):
        response = await wallet_client.get("/wallet/me")
        again = await wallet_client.get("/wallet/me")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["user_id"] == user.user_id
    assert data["balance"] == 0
    assert data["limits"] == {
        "daily_earning_remaining": 5000,
        "max_daily_earning": 5000,
        "max_wallet_usage_percent": 30,
    }
    assert again.json()["id"] == data["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_my_wallet_limits_follow_earnings_and_tier(wallet_client, db_session):
    from services.wallet_service.app.main import app

    user = make_member_user(
        user_id=f"golden-{uuid.uuid4().hex[:8]}", membership_tier="golden"
    )
    with override_auth(app, user):
        await wallet_client.post("/wallet/check-in")
        response = await wallet_client.get("/wallet/me")

    limits = response.json()["limits"]
    assert response.json()["balance"] == 200
    assert limits["daily_earning_remaining"] == 4800
    assert limits["max_wallet_usage_percent"] == 50


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_transactions_empty(wallet_client, db_session):
    await wallet_client.post("/wallet/create")

    response = await wallet_client.get("/wallet/transactions")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 0
    assert data["transactions"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_transactions_after_check_in_and_redeem(wallet_client, db_session):
    """GET /wallet/transactions: newest first, filterable by type."""
    await _seed_wallet(db_session, balance=2000)
    await wallet_client.post("/wallet/check-in")
    await wallet_client.post(
        "/wallet/redeem",
        json={"request_id": "req-list", "benefit_kind": "free_delivery"},
    )

    response = await wallet_client.get("/wallet/transactions")
    spends = await wallet_client.get(
        "/wallet/transactions", params={"transaction_type": "spend"}
    )

    data = response.json()
    assert data["total"] == 2
    assert data["transactions"][0]["transaction_type"] == "spend"
    assert data["transactions"][0]["balance_before"] == 2100
    assert data["transactions"][0]["balance_after"] == 1100
    assert spends.json()["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_single_transaction(wallet_client, db_session):
    await wallet_client.post("/wallet/check-in")
    listing = (await wallet_client.get("/wallet/transactions")).json()
    txn_id = listing["transactions"][0]["id"]

    response = await wallet_client.get(f"/wallet/transactions/{txn_id}")
    missing = await wallet_client.get(f"/wallet/transactions/{uuid.uuid4()}")

    assert response.status_code == 200
    assert response.json()["source"] == "checkin"
    assert response.json()["metadata"]["consecutive_days"] == 1
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_read_other_users_transaction(wallet_client, db_session):
    from services.wallet_service.app.main import app

    await wallet_client.post("/wallet/check-in")
    txn_id = (await wallet_client.get("/wallet/transactions")).json()[
        "transactions"
    ][0]["id"]

    with override_auth(app, make_member_user(user_id="someone-else")):
        response = await wallet_client.get(f"/wallet/transactions/{txn_id}")

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Redemptions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redeem_free_delivery(wallet_client, db_session):
    """POST /wallet/redeem: fixed-price benefit uses its configured cost."""
    await _seed_wallet(db_session, balance=1500)

    response = await wallet_client.post(
        "/wallet/redeem",
        json={"request_id": "req-1", "benefit_kind": "free_delivery"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["balance"] == 500
    assert data["duplicate"] is False
    assert data["redemption"]["cost"] == 1000


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redeem_retry_is_idempotent(wallet_client, db_session):
    await _seed_wallet(db_session, balance=1500)
    body = {"request_id": "req-retry", "benefit_kind": "coupon", "cost": 300}

    first = await wallet_client.post("/wallet/redeem", json=body)
    second = await wallet_client.post("/wallet/redeem", json=body)

    assert second.status_code == 200
    assert second.json()["duplicate"] is True
    assert second.json()["redemption"]["id"] == first.json()["redemption"]["id"]
    assert second.json()["balance"] == 1200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redeem_insufficient_balance(wallet_client, db_session):
    await _seed_wallet(db_session, balance=100)

    response = await wallet_client.post(
        "/wallet/redeem",
        json={"request_id": "req-poor", "benefit_kind": "coupon", "cost": 300},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INSUFFICIENT_BALANCE"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redeem_without_cost_for_priced_benefit(wallet_client, db_session):
    await _seed_wallet(db_session)

    response = await wallet_client.post(
        "/wallet/redeem",
        json={"request_id": "req-nocost", "benefit_kind": "coupon"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redeem_for_order_usage_cap(wallet_client, db_session):
    """POST /wallet/redeem/order: non-members may pay at most 30% from wallet."""
    from services.wallet_service.app.main import app

    await _seed_wallet(db_session, balance=10_000)
    body = {
        "request_id": "order-77",
        "benefit_kind": "order_discount",
        "cost": 5000,
        "order_total": 10_000,
    }

    refused = await wallet_client.post("/wallet/redeem/order", json=body)
    with override_auth(app, make_member_user(membership_tier="Golden Paw")):
        accepted = await wallet_client.post("/wallet/redeem/order", json=body)

    assert refused.status_code == 400
    assert refused.json()["detail"]["code"] == "USAGE_CAP_EXCEEDED"
    assert refused.json()["detail"]["remaining_allowance"] == 3000
    assert accepted.status_code == 200, accepted.text
    assert accepted.json()["balance"] == 5000


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_redemptions(wallet_client, db_session):
    await _seed_wallet(db_session, balance=1000)
    for i in range(2):
        await wallet_client.post(
            "/wallet/redeem",
            json={"request_id": f"req-{i}", "benefit_kind": "coupon", "cost": 100},
        )

    response = await wallet_client.get("/wallet/redemptions")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {r["request_id"] for r in data["redemptions"]} == {"req-0", "req-1"}


# ---------------------------------------------------------------------------
# Check-in & tasks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_in_once_per_day(wallet_client, db_session):
    first = await wallet_client.post("/wallet/check-in")
    second = await wallet_client.post("/wallet/check-in")
    status = await wallet_client.get("/wallet/check-in/status")

    assert first.status_code == 200, first.text
    assert first.json()["reward"] == 100
    assert first.json()["balance"] == 100
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "ALREADY_CHECKED_IN"
    assert status.json()["checked_in_today"] is True
    assert status.json()["consecutive_days"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_in_diamond_bonus(wallet_client, db_session):
    from services.wallet_service.app.main import app

    with override_auth(app, make_member_user(membership_tier="diamond")):
        response = await wallet_client.post("/wallet/check-in")

    assert response.json()["reward"] == 300


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_task(wallet_client, db_session):
    first = await wallet_client.post(
        "/wallet/tasks/complete", json={"task_type": "photo_review"}
    )
    repeat = await wallet_client.post(
        "/wallet/tasks/complete", json={"task_type": "photo_review"}
    )
    status = await wallet_client.get("/wallet/tasks/status")

    assert first.status_code == 200, first.text
    assert first.json()["task"]["reward"] == 500
    assert first.json()["balance"] == 500
    assert repeat.status_code == 409
    assert repeat.json()["detail"]["code"] == "TASK_ALREADY_COMPLETED"
    by_type = {t["task_type"]: t for t in status.json()}
    assert by_type["photo_review"]["completed"] is True
    assert by_type["review_order"]["completed"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_requires_authentication(db_session):
    from httpx import ASGITransport, AsyncClient
    from libs.db.session import get_async_db
    from services.wallet_service.app.main import app

    app.dependency_overrides[get_async_db] = lambda: db_session
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.get("/wallet/me")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
