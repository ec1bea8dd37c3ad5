"""Order-backend shapes the reservation ledger consumes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..models import ItemType
from ..utils.time import parse_iso_date

MERCHANT_REFERENCE_PREFIX = "wc_"
_MERCHANT_REFERENCE_RE = re.compile(r"wc_(\d+)")


@dataclass(frozen=True)
class OrderLine:
    line_id: Optional[str]
    quantity: int = 1


@dataclass(frozen=True)
class OrderMeta:
    item_type: ItemType
    item_slug: Optional[str]
    scheduled_date: Optional[date]
    time_slot: Optional[str]


@dataclass(frozen=True)
class OrderSnapshot:
    order_id: str
    status: str
    lines: Tuple[OrderLine, ...]
    meta: OrderMeta
    meta_fields: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(fields: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _text(fields.get(key))
        if value is not None:
            return value
    return None


def resolve_order_meta(fields: Mapping[str, Any]) -> OrderMeta:
    """Resolve item type, slug and schedule from order meta (snake_case or camelCase keys)."""
    service_slug = _first(fields, "service_slug", "serviceSlug")
    subscription_slug = _first(fields, "subscription_slug", "subscriptionSlug")
    raw_type = _first(fields, "item_type", "itemType")

    if raw_type is not None and raw_type.lower() in {t.value for t in ItemType}:
        item_type = ItemType(raw_type.lower())
    elif subscription_slug:
        item_type = ItemType.SUBSCRIPTION
    else:
        item_type = ItemType.SERVICE

    item_slug = _first(fields, "item_slug", "itemSlug")
    if item_slug is None:
        item_slug = subscription_slug if item_type == ItemType.SUBSCRIPTION else service_slug

    return OrderMeta(
        item_type=item_type,
        item_slug=item_slug,
        scheduled_date=parse_iso_date(_first(fields, "scheduled_date", "scheduledDate")),
        time_slot=_first(fields, "time_slot", "timeSlot"),
    )


def normalize_order_id(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return _text(value)


def normalize_lines(lines: Sequence[Mapping[str, Any]]) -> Tuple[OrderLine, ...]:
    out = []
    for line in lines:
        try:
            quantity = int(line.get("quantity") or 1)
        except (TypeError, ValueError):
            quantity = 1
        out.append(OrderLine(line_id=normalize_order_id(line.get("id")), quantity=max(1, quantity)))
    return tuple(out)


def merchant_reference_for(order_id: str | int) -> str:
    return f"{MERCHANT_REFERENCE_PREFIX}{order_id}"


def order_id_from_reference(reference: Any) -> Optional[str]:
    """Extract the order id from a ``wc_<id>`` merchant reference, None when unparsable or zero."""
    if not isinstance(reference, str):
        return None
    match = _MERCHANT_REFERENCE_RE.search(reference)
    if not match:
        return None
    order_id = int(match.group(1))
    return str(order_id) if order_id else None
