from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Sequence

from ..domain.errors import BookingError
from ..domain.orders import OrderSnapshot
from ..domain.repositories import OrderBackend
from ..utils.audit_log import emit_audit_log
from ..utils.time import utc_now_naive
from .checkout import PAYMENT_PROVIDER

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_STATUSES = ("cancelled", "failed", "pending")
CLEANUP_PAGE_SIZE = 100


@dataclass(frozen=True)
class CleanupFailure:
    order_id: str
    message: str


@dataclass
class CleanupReport:
    scanned: int = 0
    deleted: List[str] = field(default_factory=list)
    failed: List[CleanupFailure] = field(default_factory=list)


def is_provider_order(order: OrderSnapshot) -> bool:
    return str(order.meta_fields.get("payment_provider") or "").upper() == PAYMENT_PROVIDER


def is_older_than(created_at: Optional[datetime], days: int, *, now: Optional[datetime] = None) -> bool:
    if created_at is None:
        return False
    cutoff = (now or utc_now_naive()) - timedelta(days=days)
    return created_at < cutoff


async def cleanup_stale_orders(
    order_backend: OrderBackend,
    release_order: Callable[[str], Awaitable[int]],
    *,
    days: int,
    statuses: Sequence[str] = DEFAULT_CLEANUP_STATUSES,
    now: Optional[datetime] = None,
) -> CleanupReport:
    """
    Release ledger rows and delete stale provider orders one by one.

    A failing order is recorded and the batch moves on. `release_order` is
    expected to commit on its own so one failure does not undo the others.
    """
    candidates = await order_backend.list_orders(
        {
            "per_page": CLEANUP_PAGE_SIZE,
            "status": ",".join(statuses),
            "orderby": "date",
            "order": "asc",
        }
    )
    report = CleanupReport(scanned=len(candidates))
    stale = [o for o in candidates if is_provider_order(o) and is_older_than(o.created_at, days, now=now)]

    for order in stale:
        try:
            rows = await release_order(order.order_id)
            await order_backend.delete_order(order.order_id, force=True)
        except BookingError as exc:
            logger.warning("Cleanup failed for order %s: %s", order.order_id, exc)
            report.failed.append(CleanupFailure(order_id=order.order_id, message=str(exc) or "Delete failed"))
            continue
        emit_audit_log(
            action="reservation.released",
            initiator="cleanup",
            order_id=order.order_id,
            order_status=order.status,
            rows=rows,
        )
        report.deleted.append(order.order_id)
    return report
