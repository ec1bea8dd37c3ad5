from datetime import datetime

import httpx
import pytest
from booking.domain.errors import ConfigError, OrderBackendError
from booking.infrastructure.woocommerce import WooCommerceOrderBackend, parse_order
from booking.models import ItemType

ORDER = {
    "id": 42,
    "status": "processing",
    "date_created_gmt": "2024-01-01T10:00:00",
    "line_items": [{"id": 7, "quantity": 2}],
    "meta_data": [
        {"key": "subscription_slug", "value": "weekly-clean"},
        {"key": "scheduled_date", "value": "2024-01-08"},
        {"key": "payment_provider", "value": "CAWL"},
        {"value": "no key"},
    ],
}


def test_parse_order() -> None:
    order = parse_order(ORDER)
    assert order.order_id == "42"
    assert order.status == "processing"
    assert [(line.line_id, line.quantity) for line in order.lines] == [("7", 2)]
    assert order.meta.item_type == ItemType.SUBSCRIPTION
    assert order.meta.item_slug == "weekly-clean"
    assert order.meta_fields["payment_provider"] == "CAWL"
    assert order.created_at == datetime(2024, 1, 1, 10, 0)


def test_parse_order_without_id() -> None:
    with pytest.raises(OrderBackendError):
        parse_order({"status": "pending"})


def _backend(handler) -> WooCommerceOrderBackend:
    return WooCommerceOrderBackend(
        "https://shop.example/wp-json/wc/v3/",
        "ck",
        "cs",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_update_order_sends_authenticated_put() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ORDER)

    order = await _backend(handler).update_order("42", {"status": "processing"})
    assert order.order_id == "42"
    assert seen[0].method == "PUT"
    assert str(seen[0].url) == "https://shop.example/wp-json/wc/v3/orders/42"
    assert seen[0].headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_list_orders_drops_empty_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[ORDER, "junk"])

    orders = await _backend(handler).list_orders({"status": "failed", "search": "", "per_page": 100})
    assert [o.order_id for o in orders] == ["42"]
    assert seen[0].url.params["status"] == "failed"
    assert seen[0].url.params["per_page"] == "100"
    assert "search" not in seen[0].url.params


@pytest.mark.asyncio
async def test_delete_order_forces_deletion() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ORDER)

    await _backend(handler).delete_order("42")
    assert seen[0].method == "DELETE"
    assert seen[0].url.params["force"] == "true"


@pytest.mark.asyncio
async def test_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"code": "woocommerce_rest_cannot_view"})

    with pytest.raises(OrderBackendError) as exc_info:
        await _backend(handler).get_order("42")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(OrderBackendError):
        await _backend(handler).get_order("42")


@pytest.mark.asyncio
async def test_unconfigured_backend() -> None:
    with pytest.raises(ConfigError):
        await WooCommerceOrderBackend("", "ck", "cs").get_order("42")
    with pytest.raises(ConfigError):
        await WooCommerceOrderBackend("https://shop.example", "", "").get_order("42")
