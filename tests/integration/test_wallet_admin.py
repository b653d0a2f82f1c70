"""Integration tests for wallet_service admin endpoints."""

import pytest
from tests.conftest import DEFAULT_USER_ID, make_admin_user, override_auth
from tests.factories import WalletFactory


def _app():
    from services.wallet_service.app.main import app

    return app


# ---------------------------------------------------------------------------
# Wallet management
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_wallets(wallet_client, db_session):
    for user_id in ("shop-alice", "shop-bob", "other-carol"):
        db_session.add(WalletFactory.create(user_id=user_id))
    await db_session.commit()

    with override_auth(_app(), make_admin_user()):
        everyone = await wallet_client.get("/admin/wallet/wallets")
        shop = await wallet_client.get(
            "/admin/wallet/wallets", params={"search": "shop"}
        )

    assert everyone.status_code == 200
    assert everyone.json()["total"] == 3
    assert shop.json()["total"] == 2
    assert {w["user_id"] for w in shop.json()["wallets"]} == {
        "shop-alice",
        "shop-bob",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_get_wallet(wallet_client, db_session):
    w = WalletFactory.create(balance=750)
    db_session.add(w)
    await db_session.commit()

    with override_auth(_app(), make_admin_user()):
        response = await wallet_client.get(f"/admin/wallet/wallets/{w.user_id}")
        missing = await wallet_client.get("/admin/wallet/wallets/nobody")

    assert response.status_code == 200
    assert response.json()["balance"] == 750
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_adjust_credit_and_debit(wallet_client, db_session):
    with override_auth(_app(), make_admin_user()):
        credit = await wallet_client.post(
            f"/admin/wallet/wallets/{DEFAULT_USER_ID}/adjust",
            json={"amount": 8000, "reason": "Compensation for lost parcel"},
        )
        debit = await wallet_client.post(
            f"/admin/wallet/wallets/{DEFAULT_USER_ID}/adjust",
            json={"amount": -500, "reason": "Duplicate compensation"},
        )

    assert credit.status_code == 200, credit.text
    assert credit.json()["transaction"]["source"] == "admin:adjustment"
    assert credit.json()["transaction"]["metadata"]["admin_id"] == "admin-user"
    assert debit.status_code == 200, debit.text
    assert debit.json()["wallet"]["balance"] == 7500
    assert debit.json()["transaction"]["transaction_type"] == "spend"

    # Admin credits are outside the member's daily earning cap
    check_in = await wallet_client.post("/wallet/check-in")
    assert check_in.status_code == 200, check_in.text


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_adjust_rejects_zero_and_overdraft(wallet_client, db_session):
    with override_auth(_app(), make_admin_user()):
        zero = await wallet_client.post(
            f"/admin/wallet/wallets/{DEFAULT_USER_ID}/adjust",
            json={"amount": 0, "reason": "No-op adjustment"},
        )
        overdraft = await wallet_client.post(
            f"/admin/wallet/wallets/{DEFAULT_USER_ID}/adjust",
            json={"amount": -100, "reason": "Claw back reward"},
        )

    assert zero.status_code == 400
    assert overdraft.status_code == 400
    assert overdraft.json()["detail"]["code"] == "INSUFFICIENT_BALANCE"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_reconcile(wallet_client, db_session):
    await wallet_client.post("/wallet/check-in")
    await wallet_client.post("/games/feed_pet/play")
    drifted = WalletFactory.create(balance=999)
    db_session.add(drifted)
    await db_session.commit()

    with override_auth(_app(), make_admin_user()):
        clean = await wallet_client.get(
            f"/admin/wallet/wallets/{DEFAULT_USER_ID}/reconcile"
        )
        broken = await wallet_client.get(
            f"/admin/wallet/wallets/{drifted.user_id}/reconcile"
        )

    assert clean.status_code == 200
    assert clean.json()["consistent"] is True
    assert clean.json()["transaction_count"] == 2
    assert clean.json()["ledger_balance"] == clean.json()["balance"]
    assert broken.json()["consistent"] is False
    assert broken.json()["ledger_balance"] == 0


# ---------------------------------------------------------------------------
# Games & stats
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_reset_games(wallet_client, db_session):
    await wallet_client.post("/games/lucky_wheel/play")
    blocked = await wallet_client.post("/games/lucky_wheel/play")

    with override_auth(_app(), make_admin_user()):
        reset = await wallet_client.delete(
            f"/admin/wallet/games/{DEFAULT_USER_ID}", params={"game": "lucky_wheel"}
        )

    again = await wallet_client.post("/games/lucky_wheel/play")
    assert blocked.status_code == 429
    assert reset.status_code == 200
    assert reset.json()["deleted"] == 1
    assert again.status_code == 200, again.text


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_stats(wallet_client, db_session):
    db_session.add(WalletFactory.create(balance=1000))
    await db_session.commit()
    await wallet_client.post("/wallet/check-in")
    await wallet_client.post("/games/quiz/play", json={"score": 2})

    with override_auth(_app(), make_admin_user()):
        response = await wallet_client.get("/admin/wallet/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["total_wallets"] == 2
    assert data["total_balance"] == 1000 + 100 + 200
    assert data["earned_today"] == 300
    assert data["plays_today"] == 1
    assert data["redemptions_today"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_member_cannot_use_admin_endpoints(wallet_client, db_session):
    response = await wallet_client.get("/admin/wallet/stats")

    assert response.status_code == 403
