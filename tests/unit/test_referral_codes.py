"""Unit tests for referral code issuance, validation and consumption."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    CodeGenerationFailedError,
    InvalidReferralCodeError,
    ValidationError,
)
from services.referral_service.models import (
    ProductReferralCode,
    ReferralCode,
    ReferralType,
    SellerAccountReferralCode,
)
from services.referral_service.services import codes
from services.referral_service.services.codes import (
    CODE_ALPHABET,
    CODE_LENGTH,
    consume_referral_code,
    create_referral_code,
    get_user_referral_codes,
    validate_referral_code,
)
from tests.factories import ReferralCodeFactory


async def _insert(db, code):
    db.add(code)
    await db.commit()
    await db.refresh(code)
    return code


# ---------------------------------------------------------------------------
# create_referral_code
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_product_code(db_session):
    code = await create_referral_code(
        db_session, user_id="user-1", type=ReferralType.PRODUCT, product_id="prod-9"
    )

    assert isinstance(code, ProductReferralCode)
    assert code.product_id == "prod-9"
    assert len(code.code) == CODE_LENGTH
    assert set(code.code) <= set(CODE_ALPHABET)
    assert code.commission_rate == Decimal("5.00")
    assert code.usage_count == 0
    assert code.is_active is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_seller_account_code_uses_seller_rate(db_session):
    code = await create_referral_code(
        db_session, user_id="user-1", type=ReferralType.SELLER_ACCOUNT
    )

    assert isinstance(code, SellerAccountReferralCode)
    assert code.commission_rate == Decimal("10.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_product_code_requires_product(db_session):
    with pytest.raises(ValidationError):
        await create_referral_code(
            db_session, user_id="user-1", type=ReferralType.PRODUCT
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_max_usage_must_be_positive(db_session):
    with pytest.raises(ValidationError):
        await create_referral_code(
            db_session,
            user_id="user-1",
            type=ReferralType.SELLER_ACCOUNT,
            max_usage=0,
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_code_generation_retries_on_collision(db_session, monkeypatch):
    """A taken value is skipped and the next candidate is used."""
    await _insert(db_session, ReferralCodeFactory.create(code="TAKEN123"))
    candidates = iter(["TAKEN123", "FRESH456"])
    monkeypatch.setattr(codes, "generate_code", lambda: next(candidates))

    code = await create_referral_code(
        db_session, user_id="user-2", type=ReferralType.SELLER_ACCOUNT
    )
    assert code.code == "FRESH456"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_code_generation_gives_up(db_session, monkeypatch):
    """Ten collisions in a row fail with CodeGenerationFailedError."""
    await _insert(db_session, ReferralCodeFactory.create(code="TAKEN123"))
    monkeypatch.setattr(codes, "generate_code", lambda: "TAKEN123")

    with pytest.raises(CodeGenerationFailedError):
        await create_referral_code(
            db_session, user_id="user-2", type=ReferralType.SELLER_ACCOUNT
        )


# ---------------------------------------------------------------------------
# validate_referral_code
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_active_code(db_session):
    code = await _insert(db_session, ReferralCodeFactory.create())

    found = await validate_referral_code(db_session, code.code, ReferralType.PRODUCT)
    assert found is not None
    assert found.id == code.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_wrong_type(db_session):
    code = await _insert(db_session, ReferralCodeFactory.create())

    assert (
        await validate_referral_code(db_session, code.code, ReferralType.SELLER_ACCOUNT)
        is None
    )


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"expires_at": utc_now() - timedelta(minutes=1)},
        {"max_usage": 2, "usage_count": 2},
    ],
    ids=["inactive", "expired", "exhausted"],
)
async def test_validate_rejects_unusable_code(db_session, overrides):
    code = await _insert(db_session, ReferralCodeFactory.create(**overrides))

    assert await validate_referral_code(db_session, code.code, ReferralType.PRODUCT) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_unknown_code(db_session):
    assert await validate_referral_code(db_session, "NOPE0000", ReferralType.PRODUCT) is None


# ---------------------------------------------------------------------------
# consume_referral_code
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_consume_respects_usage_cap(db_session):
    """N uses succeed, the (N+1)th is rejected and the count stays at N."""
    code = await _insert(db_session, ReferralCodeFactory.create(max_usage=3))

    for expected in (1, 2, 3):
        consumed = await consume_referral_code(db_session, code.code, ReferralType.PRODUCT)
        await db_session.commit()
        assert consumed.usage_count == expected

    with pytest.raises(InvalidReferralCodeError):
        await consume_referral_code(db_session, code.code, ReferralType.PRODUCT)
    await db_session.rollback()

    await db_session.refresh(code)
    assert code.usage_count == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_consume_expired_code(db_session):
    code = await _insert(
        db_session,
        ReferralCodeFactory.create(expires_at=utc_now() - timedelta(seconds=1)),
    )

    with pytest.raises(InvalidReferralCodeError):
        await consume_referral_code(db_session, code.code, ReferralType.PRODUCT)


# ---------------------------------------------------------------------------
# get_user_referral_codes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_user_codes_exclude_inactive(db_session):
    await _insert(db_session, ReferralCodeFactory.create(user_id="owner"))
    await _insert(
        db_session,
        ReferralCodeFactory.create(type="seller_account", user_id="owner"),
    )
    await _insert(
        db_session, ReferralCodeFactory.create(user_id="owner", is_active=False)
    )

    user_codes = await get_user_referral_codes(db_session, "owner")

    assert len(user_codes) == 2
    assert all(isinstance(c, ReferralCode) for c in user_codes)
    assert {type(c) for c in user_codes} == {
        ProductReferralCode,
        SellerAccountReferralCode,
    }
