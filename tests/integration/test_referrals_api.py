"""Integration tests for the referral service endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.referral_service.models import ReferralStatus
from services.referral_service.services.sources import OrderLine
from tests.conftest import (
    make_admin_user,
    make_member_user,
    make_service_user,
    override_auth,
)
from tests.factories import ReferralFactory


def _app():
    from services.referral_service.app.main import app

    return app


async def _create_code(client, **overrides):
    body = {"type": "product", "user_id": "user-referrer", "product_id": "prod-1"}
    body.update(overrides)
    response = await client.post("/referrals/codes", json=body)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_referral(client, code, referred_id="user-new", **overrides):
    body = {
        "referrer_id": code["user_id"],
        "referred_id": referred_id,
        "type": code["type"],
        "referral_code": code["code"],
    }
    body.update(overrides)
    return await client.post("/referrals", json=body)


async def _insert(db, row):
    db.add(row)
    await db.commit()
    return row


# ---------------------------------------------------------------------------
# Codes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_code(referral_client):
    code = await _create_code(referral_client, max_usage=5)

    assert code["type"] == "product"
    assert code["product_id"] == "prod-1"
    assert len(code["code"]) == 8
    assert Decimal(code["commission_rate"]) == Decimal("5.00")
    assert code["max_usage"] == 5
    assert code["usage_count"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_seller_account_code(referral_client):
    code = await _create_code(
        referral_client, type="seller_account", product_id=None, commission_rate="12.5"
    )

    assert code["type"] == "seller_account"
    assert Decimal(code["commission_rate"]) == Decimal("12.50")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_code_without_product_is_rejected(referral_client):
    response = await referral_client.post(
        "/referrals/codes", json={"type": "product", "user_id": "user-referrer"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_code_requires_authentication(referral_client):
    with override_auth(_app(), None):
        response = await referral_client.post(
            "/referrals/codes",
            json={"type": "seller_account", "user_id": "user-referrer"},
        )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_code_is_public(referral_client):
    code = await _create_code(referral_client)

    with override_auth(_app(), None):
        ok = await referral_client.post(
            "/referrals/validate", json={"code": code["code"], "type": "product"}
        )
        wrong_type = await referral_client.post(
            "/referrals/validate", json={"code": code["code"], "type": "seller_account"}
        )

    assert ok.status_code == 200
    assert ok.json()["id"] == code["id"]
    assert wrong_type.status_code == 404
    assert wrong_type.json() == {
        "error": {"code": "not_found", "message": "Invalid or expired referral code"}
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_user_codes(referral_client):
    await _create_code(referral_client)
    await _create_code(referral_client, type="seller_account", product_id=None)

    response = await referral_client.get("/referrals/codes/user-referrer")

    assert response.status_code == 200
    assert sorted(c["type"] for c in response.json()) == ["product", "seller_account"]


# ---------------------------------------------------------------------------
# Referrals
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_referral(referral_client):
    code = await _create_code(referral_client)

    response = await _create_referral(referral_client, code)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "pending"
    assert data["type"] == "product"
    assert data["product_id"] == "prod-1"
    assert data["referral_code"] == code["code"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_duplicate_referral_conflicts(referral_client):
    code = await _create_code(referral_client)
    await _create_referral(referral_client, code)

    response = await _create_referral(referral_client, code)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "duplicate_resource"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_self_referral_is_rejected(referral_client):
    code = await _create_code(referral_client)

    response = await _create_referral(referral_client, code, referred_id="user-referrer")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_exhausted_code_is_rejected(referral_client):
    code = await _create_code(referral_client, max_usage=1)
    first = await _create_referral(referral_client, code, referred_id="user-1")
    assert first.status_code == 201

    second = await _create_referral(referral_client, code, referred_id="user-2")

    assert second.status_code == 400
    assert second.json()["error"]["code"] == "invalid_referral_code"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_referral_lifecycle_endpoints(referral_client):
    code = await _create_code(referral_client, type="seller_account", product_id=None)
    referral = (await _create_referral(referral_client, code)).json()

    activated = await referral_client.post(
        "/referrals/activate",
        json={"referral_id": referral["id"], "seller_id": "seller-new"},
    )
    assert activated.status_code == 200, activated.text
    assert activated.json()["status"] == "active"
    assert activated.json()["seller_id"] == "seller-new"

    completed = await referral_client.post(
        "/referrals/complete", json={"referral_id": referral["id"]}
    )
    assert completed.json()["status"] == "completed"

    cancelled = await referral_client.post(
        "/referrals/cancel", json={"referral_id": referral["id"], "reason": "late"}
    )
    assert cancelled.status_code == 400
    assert cancelled.json()["error"]["code"] == "invalid_state"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_activate_unknown_referral(referral_client):
    response = await referral_client.post(
        "/referrals/activate", json={"referral_id": str(uuid.uuid4())}
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_process_order_commission_flow(referral_client, db_session, order_source):
    referral = await _insert(
        db_session,
        ReferralFactory.create(status=ReferralStatus.ACTIVE, product_id="prod-1"),
    )
    order_id = uuid.uuid4()
    order_source.add(
        order_id,
        "delivered",
        [
            OrderLine(
                product_id="prod-1",
                seller_id="seller-x",
                quantity=4,
                unit_price=Decimal("25.00"),
            )
        ],
    )

    with override_auth(_app(), make_service_user("orders_service")):
        first = await referral_client.post(f"/referrals/process-order-commission/{order_id}")
        again = await referral_client.post(f"/referrals/process-order-commission/{order_id}")

    assert first.status_code == 200, first.text
    [commission] = first.json()["commissions"]
    assert commission["source"] == "order"
    assert commission["order_id"] == str(order_id)
    assert Decimal(commission["commission_amount"]) == Decimal("5.00")
    assert again.json()["commissions"] == []

    pending = await referral_client.get("/referrals/commissions/pending/user-referrer")
    assert [c["id"] for c in pending.json()] == [commission["id"]]

    history = await referral_client.get("/referrals/user/user-referrer")
    [entry] = history.json()
    assert entry["referral"]["id"] == str(referral.id)
    assert [c["id"] for c in entry["commissions"]] == [commission["id"]]

    with override_auth(_app(), make_admin_user()):
        paid = await referral_client.post(
            "/referrals/commissions/paid",
            json={"commission_id": commission["id"], "payout_transaction_id": "TXN-1"},
        )
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"

    stats = await referral_client.get("/referrals/stats/user-referrer")
    assert stats.status_code == 200
    data = stats.json()
    assert data["total_referrals"] == 1
    assert data["active_referrals"] == 1
    assert Decimal(data["total_commission"]) == Decimal("5.00")
    assert Decimal(data["paid_commission"]) == Decimal("5.00")
    assert Decimal(data["pending_commission"]) == Decimal("0.00")
    assert data["referral_breakdown"] == {"seller_accounts": 0, "products": 1}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_process_order_commission_requires_delivery(referral_client, order_source):
    order_id = uuid.uuid4()
    order_source.add(order_id, "processing", [])

    with override_auth(_app(), make_service_user()):
        response = await referral_client.post(
            f"/referrals/process-order-commission/{order_id}"
        )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "precondition_failed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_process_commission_requires_service_role(referral_client):
    response = await referral_client.post(
        f"/referrals/process-order-commission/{uuid.uuid4()}"
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_process_seller_commission(referral_client, db_session, seller_source):
    await _insert(
        db_session,
        ReferralFactory.create(
            type="seller_account",
            status=ReferralStatus.ACTIVE,
            seller_id="seller-new",
        ),
    )
    seller_source.revenue["seller-new"] = Decimal("1000.00")

    with override_auth(_app(), make_service_user("orders_service")):
        first = await referral_client.post("/referrals/process-seller-commission/seller-new")
        again = await referral_client.post("/referrals/process-seller-commission/seller-new")
        nothing = await referral_client.post("/referrals/process-seller-commission/unknown")

    assert first.status_code == 200, first.text
    commission = first.json()["commission"]
    assert commission["source"] == "seller_revenue"
    assert Decimal(commission["commission_amount"]) == Decimal("100.00")
    assert again.json()["commission"]["id"] == commission["id"]
    assert nothing.json() == {"seller_id": "unknown", "commission": None}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_paid_requires_admin(referral_client):
    with override_auth(_app(), make_member_user("someone")):
        response = await referral_client.post(
            "/referrals/commissions/paid",
            json={"commission_id": str(uuid.uuid4()), "payout_transaction_id": "TXN"},
        )
    assert response.status_code == 403
