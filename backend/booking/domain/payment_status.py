import logging
from enum import StrEnum
from typing import FrozenSet

logger = logging.getLogger(__name__)


class OrderBucket(StrEnum):
    PROCESSING = "processing"
    FAILED = "failed"
    PENDING = "pending"
    ON_HOLD = "on-hold"


_PROVIDER_BUCKETS: dict[str, OrderBucket] = {
    **dict.fromkeys(
        ("CAPTURED", "PAID", "AUTHORIZED", "COMPLETED", "CHARGED", "PENDING_CAPTURE"),
        OrderBucket.PROCESSING,
    ),
    **dict.fromkeys(
        ("CANCELLED", "CANCELED", "REJECTED", "REFUSED", "FAILED", "REVERSED", "CHARGEBACKED"),
        OrderBucket.FAILED,
    ),
    **dict.fromkeys(("PENDING", "CREATED", "REDIRECTED", "PENDING_PAYMENT"), OrderBucket.PENDING),
}

# Order-backend statuses that hold or free capacity.
COMMITTED_ORDER_STATUSES: FrozenSet[str] = frozenset({"processing", "completed"})
RELEASED_ORDER_STATUSES: FrozenSet[str] = frozenset({"failed", "cancelled", "refunded"})


def map_provider_status(status: str | None) -> OrderBucket:
    """Map a provider payment status onto an order-backend status. Unknown values land on on-hold."""
    normalized = str(status or "").strip().upper()
    bucket = _PROVIDER_BUCKETS.get(normalized)
    if bucket is None:
        logger.warning("Unrecognized payment status %r mapped to on-hold", status)
        return OrderBucket.ON_HOLD
    return bucket


def is_committed(order_status: str | None) -> bool:
    return str(order_status or "").strip().lower() in COMMITTED_ORDER_STATUSES


def is_released(order_status: str | None) -> bool:
    return str(order_status or "").strip().lower() in RELEASED_ORDER_STATUSES
