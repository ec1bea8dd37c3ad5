from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from ..domain.errors import ConfigError, GatewayRejected, InvalidCheckoutRequest, OrderBackendError
from ..domain.gateway import CheckoutOrder, HostedSession
from ..domain.repositories import OrderBackend, PaymentGateway, RuleStore
from ..models import ItemType

logger = logging.getLogger(__name__)

PAYMENT_PROVIDER = "CAWL"
UNIT_PRICING = "unit"


@dataclass(frozen=True)
class CheckoutDraft:
    service_name: Optional[str]
    customer_email: Optional[str]
    scheduled_date: Optional[date]
    amount_minor: Optional[int] = None
    service_slug: Optional[str] = None
    subscription_slug: Optional[str] = None
    item_type: ItemType = ItemType.SERVICE
    pricing_option: str = UNIT_PRICING
    pricing_label: str = ""
    currency: str = "EUR"
    customer_first_name: str = ""
    customer_last_name: str = ""
    customer_phone: Optional[str] = None
    time_slot: Optional[str] = None

    @property
    def item_slug(self) -> Optional[str]:
        if self.item_type == ItemType.SUBSCRIPTION:
            return self.subscription_slug or self.service_slug
        return self.service_slug


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    session: HostedSession
    return_url: str
    amount_minor: int


def build_return_url(base_url: str, order_id: str) -> str:
    if not base_url:
        return ""
    return f"{base_url.rstrip('/')}/payment/return?orderId={order_id}"


def _order_payload(draft: CheckoutDraft, *, product_id: int, amount_minor: int, pricing_label: str) -> Dict[str, Any]:
    meta: List[Dict[str, Any]] = [
        {"key": "service_slug", "value": draft.service_slug or ""},
        {"key": "subscription_slug", "value": draft.subscription_slug or ""},
        {"key": "service_name", "value": draft.service_name},
        {"key": "item_type", "value": draft.item_type.value},
        {"key": "pricing_option", "value": draft.pricing_option or UNIT_PRICING},
        {"key": "pricing_label", "value": pricing_label},
        {"key": "scheduled_date", "value": draft.scheduled_date.isoformat() if draft.scheduled_date else ""},
        {"key": "time_slot", "value": draft.time_slot or ""},
        {"key": "payment_provider", "value": PAYMENT_PROVIDER},
    ]
    return {
        "status": "pending",
        "currency": draft.currency,
        "set_paid": False,
        "billing": {
            "first_name": draft.customer_first_name,
            "last_name": draft.customer_last_name,
            "email": draft.customer_email,
            "phone": draft.customer_phone or "",
        },
        "line_items": [
            {
                "product_id": product_id,
                "quantity": 1,
                "total": f"{amount_minor / 100:.2f}",
                "name": draft.service_name,
            }
        ],
        "meta_data": meta,
    }


async def _resolve_price(rule_store: RuleStore, draft: CheckoutDraft) -> tuple[Optional[int], str]:
    """Pack options are priced from the item's tiers; unit pricing trusts the submitted amount."""
    option = draft.pricing_option or UNIT_PRICING
    if option == UNIT_PRICING or not draft.item_slug:
        return draft.amount_minor, draft.pricing_label
    item = await rule_store.get_item(draft.item_slug)
    if item is None:
        return draft.amount_minor, draft.pricing_label
    tier = item.tier_for_mode(option)
    if tier is None:
        raise InvalidCheckoutRequest(f"Unknown pricing option: {option}")
    return tier.amount_minor, draft.pricing_label or tier.price_label


async def create_checkout(
    order_backend: OrderBackend,
    gateway: PaymentGateway,
    rule_store: RuleStore,
    *,
    draft: CheckoutDraft,
    product_id: int,
    return_base_url: str,
    webhook_url: Optional[str] = None,
) -> CheckoutResult:
    if not draft.service_name or not draft.customer_email:
        raise InvalidCheckoutRequest("Missing required fields.")
    if draft.scheduled_date is None:
        raise InvalidCheckoutRequest("Missing scheduledDate.")
    if not product_id:
        raise ConfigError("Missing WC_DEFAULT_PRODUCT_ID.", caller_correctable=True)
    gateway.ensure_configured()

    amount_minor, pricing_label = await _resolve_price(rule_store, draft)
    if not amount_minor or amount_minor <= 0:
        raise InvalidCheckoutRequest("Missing required fields.")

    order = await order_backend.create_order(
        _order_payload(draft, product_id=product_id, amount_minor=amount_minor, pricing_label=pricing_label)
    )
    return_url = build_return_url(return_base_url, order.order_id)

    checkout_order = CheckoutOrder(
        order_id=order.order_id,
        amount_minor=amount_minor,
        currency=draft.currency,
        customer_email=draft.customer_email,
        customer_phone=draft.customer_phone or None,
    )
    try:
        session = await gateway.create_hosted_session(checkout_order, return_url, webhook_url)
    except GatewayRejected as exc:
        await _mark_failed(order_backend, order.order_id, exc)
        raise

    await order_backend.update_order(
        order.order_id,
        {
            "meta_data": [
                {"key": "cawl_hosted_checkout_id", "value": session.session_id or ""},
                {"key": "cawl_partial_redirect_url", "value": session.partial_redirect_url or ""},
            ]
        },
    )
    return CheckoutResult(order_id=order.order_id, session=session, return_url=return_url, amount_minor=amount_minor)


async def _mark_failed(order_backend: OrderBackend, order_id: str, exc: GatewayRejected) -> None:
    try:
        await order_backend.update_order(
            order_id,
            {
                "status": "failed",
                "meta_data": [
                    {"key": "cawl_last_error", "value": json.dumps(exc.body, default=str)},
                    {"key": "cawl_last_status", "value": str(exc.status_code)},
                ],
            },
        )
    except OrderBackendError:
        logger.exception("Could not mark order %s failed after gateway rejection", order_id)
    exc.order_id = order_id
