from datetime import date

import pytest
from booking.domain.catalog import BookableItem, PricingTier
from booking.domain.errors import ConfigError, GatewayRejected, InvalidCheckoutRequest
from booking.models import ItemType
from booking.usecases import checkout as uc
from fakes import FakeGateway, FakeOrderBackend, FakeRuleStore, menage_item


def _draft(**overrides: object) -> uc.CheckoutDraft:
    values: dict = {
        "service_name": "Ménage",
        "customer_email": "client@example.com",
        "scheduled_date": date(2024, 1, 1),
        "amount_minor": 4500,
        "service_slug": "menage",
        "time_slot": "09:00-12:00",
    }
    values.update(overrides)
    return uc.CheckoutDraft(**values)


async def _checkout(
    backend: FakeOrderBackend,
    gateway: FakeGateway,
    draft: uc.CheckoutDraft,
    rule_store: FakeRuleStore | None = None,
    product_id: int = 99,
) -> uc.CheckoutResult:
    return await uc.create_checkout(
        backend,
        gateway,
        rule_store or FakeRuleStore(menage_item()),
        draft=draft,
        product_id=product_id,
        return_base_url="https://shop.example/",
    )


@pytest.mark.asyncio
async def test_checkout_creates_pending_order_and_session(order_backend: FakeOrderBackend) -> None:
    gateway = FakeGateway()
    result = await _checkout(order_backend, gateway, _draft())

    assert result.order_id == "1000"
    assert result.session.redirect_url == "https://payment.example/pay/abc"
    assert result.return_url == "https://shop.example/payment/return?orderId=1000"

    payload = order_backend.created[0]
    assert payload["status"] == "pending"
    assert payload["line_items"][0]["total"] == "45.00"
    meta = {entry["key"]: entry["value"] for entry in payload["meta_data"]}
    assert meta["scheduled_date"] == "2024-01-01"
    assert meta["time_slot"] == "09:00-12:00"
    assert meta["payment_provider"] == "CAWL"

    checkout_order, return_url, _ = gateway.sessions[0]
    assert checkout_order.order_id == "1000"
    assert checkout_order.amount_minor == 4500
    assert return_url == result.return_url

    order_id, update = order_backend.updates[-1]
    assert order_id == "1000"
    assert {"key": "cawl_hosted_checkout_id", "value": "hc-1"} in update["meta_data"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"service_name": ""}, {"customer_email": None}, {"scheduled_date": None}, {"amount_minor": None}],
)
async def test_missing_fields_fail_before_external_calls(order_backend: FakeOrderBackend, overrides: dict) -> None:
    gateway = FakeGateway()
    with pytest.raises(InvalidCheckoutRequest):
        await _checkout(order_backend, gateway, _draft(**overrides))
    assert order_backend.created == []
    assert gateway.sessions == []


@pytest.mark.asyncio
async def test_missing_product_id_is_a_config_error(order_backend: FakeOrderBackend) -> None:
    with pytest.raises(ConfigError) as exc_info:
        await _checkout(order_backend, FakeGateway(), _draft(), product_id=0)
    assert exc_info.value.caller_correctable
    assert order_backend.created == []


@pytest.mark.asyncio
async def test_unconfigured_gateway_creates_no_order(order_backend: FakeOrderBackend) -> None:
    gateway = FakeGateway(config_error=ConfigError("Missing payment API credentials for prod."))
    with pytest.raises(ConfigError):
        await _checkout(order_backend, gateway, _draft())
    assert order_backend.created == []


@pytest.mark.asyncio
async def test_gateway_rejection_marks_order_failed(order_backend: FakeOrderBackend) -> None:
    gateway = FakeGateway(session_error=GatewayRejected(402, {"errorId": "x", "errors": [{"code": "20000000"}]}))
    with pytest.raises(GatewayRejected) as exc_info:
        await _checkout(order_backend, gateway, _draft())

    assert exc_info.value.order_id == "1000"
    order_id, update = order_backend.updates[-1]
    assert order_id == "1000"
    assert update["status"] == "failed"
    assert {"key": "cawl_last_status", "value": "402"} in update["meta_data"]


@pytest.mark.asyncio
async def test_rejection_still_raised_when_order_update_fails(order_backend: FakeOrderBackend) -> None:
    order_backend.fail_updates = True
    gateway = FakeGateway(session_error=GatewayRejected(400, "bad request"))
    with pytest.raises(GatewayRejected) as exc_info:
        await _checkout(order_backend, gateway, _draft())
    assert exc_info.value.order_id == "1000"


@pytest.mark.asyncio
async def test_pack_pricing_comes_from_item_tiers(order_backend: FakeOrderBackend) -> None:
    item = BookableItem(
        slug="menage",
        item_type=ItemType.SERVICE,
        pricing_tiers=(PricingTier(size=5, price_label="200 €", amount_minor=20000),),
    )
    gateway = FakeGateway()
    result = await _checkout(
        order_backend,
        gateway,
        _draft(amount_minor=100, pricing_option="pack5"),
        rule_store=FakeRuleStore(item),
    )
    assert result.amount_minor == 20000
    meta = {entry["key"]: entry["value"] for entry in order_backend.created[0]["meta_data"]}
    assert meta["pricing_option"] == "pack5"
    assert meta["pricing_label"] == "200 €"


@pytest.mark.asyncio
async def test_unknown_pack_is_rejected(order_backend: FakeOrderBackend) -> None:
    with pytest.raises(InvalidCheckoutRequest):
        await _checkout(order_backend, FakeGateway(), _draft(pricing_option="pack12"))
    assert order_backend.created == []


def test_subscription_draft_uses_subscription_slug() -> None:
    draft = _draft(item_type=ItemType.SUBSCRIPTION, subscription_slug="weekly-clean")
    assert draft.item_slug == "weekly-clean"
    assert _draft().item_slug == "menage"
    assert uc.build_return_url("", "5") == ""
