from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from ..domain.errors import SignatureInvalid
from ..domain.gateway import WebhookEvent
from ..domain.orders import OrderSnapshot, order_id_from_reference
from ..domain.payment_status import OrderBucket, map_provider_status
from ..domain.repositories import OrderBackend, PaymentGateway, ReservationRepository
from ..infrastructure.woocommerce import parse_order
from ..utils.signatures import verify_hmac_sha256_base64
from .lifecycle import LifecycleResult, apply_order_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentWebhookResult:
    event_type: str
    payment_status: str
    merchant_reference: str
    order_id: Optional[str] = None
    bucket: Optional[OrderBucket] = None
    order: Optional[OrderSnapshot] = None
    lifecycle: Optional[LifecycleResult] = None


def verify_payment_event(
    gateway: PaymentGateway,
    *,
    raw_body: bytes,
    headers: Mapping[str, str],
) -> WebhookEvent:
    event = gateway.verify_webhook(raw_body, headers)
    logger.info(
        "Payment webhook event: type=%s status=%s reference=%s",
        event.event_type,
        event.payment_status,
        event.merchant_reference,
    )
    return event


async def sync_order_with_payment(order_backend: OrderBackend, event: WebhookEvent) -> PaymentWebhookResult:
    """Push the mapped status to the order backend. Events without a usable reference are returned untouched."""
    order_id = order_id_from_reference(event.merchant_reference)
    if order_id is None:
        logger.info("Payment webhook reference %r matches no order; ignored", event.merchant_reference)
        return PaymentWebhookResult(
            event_type=event.event_type,
            payment_status=event.payment_status,
            merchant_reference=event.merchant_reference,
        )

    bucket = map_provider_status(event.payment_status)
    order = await order_backend.update_order(
        order_id,
        {
            "status": bucket.value,
            "meta_data": [
                {"key": "cawl_last_event", "value": event.event_type},
                {"key": "cawl_last_status", "value": event.payment_status},
            ],
        },
    )
    return PaymentWebhookResult(
        event_type=event.event_type,
        payment_status=event.payment_status,
        merchant_reference=event.merchant_reference,
        order_id=order_id,
        bucket=bucket,
        order=order,
    )


async def apply_payment_to_ledger(
    res_repo: ReservationRepository,
    result: PaymentWebhookResult,
) -> PaymentWebhookResult:
    if result.order_id is None or result.order is None or result.bucket is None:
        return result
    lifecycle = await apply_order_status(
        res_repo,
        order_id=result.order_id,
        order_lines=result.order.lines,
        new_status=result.bucket.value,
        order_meta=result.order.meta,
        initiator="payment_webhook",
    )
    return replace(result, lifecycle=lifecycle)


async def handle_payment_webhook(
    gateway: PaymentGateway,
    order_backend: OrderBackend,
    res_repo: ReservationRepository,
    *,
    raw_body: bytes,
    headers: Mapping[str, str],
) -> PaymentWebhookResult:
    # Nothing below runs unless the signature checks out.
    event = verify_payment_event(gateway, raw_body=raw_body, headers=headers)
    result = await sync_order_with_payment(order_backend, event)
    return await apply_payment_to_ledger(res_repo, result)


def verify_order_webhook(secret: str, raw_body: bytes, signature: Optional[str]) -> None:
    if not verify_hmac_sha256_base64(secret, raw_body, signature or ""):
        raise SignatureInvalid("order webhook signature mismatch")


def decode_order_payload(raw_body: bytes) -> Optional[Mapping[str, Any]]:
    """Return the order object of an order-backend delivery, None for pings and non-order bodies."""
    try:
        body = json.loads(raw_body)
    except ValueError:
        # ping deliveries are form encoded: webhook_id=<n>
        return None
    if not isinstance(body, Mapping) or body.get("id") in (None, ""):
        return None
    return body


async def handle_order_event(
    res_repo: ReservationRepository,
    *,
    secret: str,
    raw_body: bytes,
    signature: Optional[str],
) -> Optional[LifecycleResult]:
    payload = decode_order_payload(raw_body)
    if payload is None:
        # Delivery pings carry no order and are sent unsigned.
        logger.info("Order webhook without an order payload acknowledged")
        return None
    verify_order_webhook(secret, raw_body, signature)
    order = parse_order(payload)
    return await apply_order_status(
        res_repo,
        order_id=order.order_id,
        order_lines=order.lines,
        new_status=order.status,
        order_meta=order.meta,
        initiator="order_webhook",
    )
