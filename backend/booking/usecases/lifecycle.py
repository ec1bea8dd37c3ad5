import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Sequence

from ..domain.orders import OrderLine, OrderMeta
from ..domain.payment_status import is_committed, is_released
from ..domain.repositories import ReservationRepository
from ..utils.audit_log import AuditInitiator, emit_audit_log

logger = logging.getLogger(__name__)


class LifecycleOutcome(StrEnum):
    UPSERTED = "upserted"
    RELEASED = "released"
    SKIPPED_NO_SCHEDULE_DATA = "skipped_no_schedule_data"
    IGNORED = "ignored"


@dataclass(frozen=True)
class LifecycleResult:
    order_id: str
    status: str
    outcome: LifecycleOutcome
    rows: int = 0


async def apply_order_status(
    res_repo: ReservationRepository,
    *,
    order_id: str,
    order_lines: Sequence[OrderLine],
    new_status: str,
    order_meta: OrderMeta,
    initiator: AuditInitiator = "system",
) -> LifecycleResult:
    """
    Move the ledger along with an order status transition.

    Committed statuses upsert one active row per order line, released statuses
    release every row of the order, anything else leaves the ledger alone.
    Callers own the transaction.
    """
    status = new_status.strip().lower()

    if is_released(status):
        released = await res_repo.release_order(order_id)
        emit_audit_log(
            action="reservation.released",
            initiator=initiator,
            order_id=order_id,
            order_status=status,
            rows=released,
        )
        return LifecycleResult(order_id=order_id, status=status, outcome=LifecycleOutcome.RELEASED, rows=released)

    if not is_committed(status):
        logger.debug("Order %s status %s does not affect reservations", order_id, status)
        return LifecycleResult(order_id=order_id, status=status, outcome=LifecycleOutcome.IGNORED)

    slug = order_meta.item_slug
    scheduled_date = order_meta.scheduled_date
    if not slug or scheduled_date is None:
        logger.info("Order %s committed without schedule data; nothing to reserve", order_id)
        emit_audit_log(
            action="reservation.skipped",
            initiator=initiator,
            order_id=order_id,
            order_status=status,
            item_slug=order_meta.item_slug,
            scheduled_date=order_meta.scheduled_date,
            message="no schedule data",
        )
        return LifecycleResult(
            order_id=order_id,
            status=status,
            outcome=LifecycleOutcome.SKIPPED_NO_SCHEDULE_DATA,
        )

    lines = list(order_lines) or [OrderLine(line_id=None, quantity=1)]
    for line in lines:
        await res_repo.upsert_active(
            order_id=order_id,
            order_line_id=line.line_id,
            item_type=order_meta.item_type,
            item_slug=slug,
            scheduled_date=scheduled_date,
            time_slot=order_meta.time_slot,
            quantity=max(1, int(line.quantity)),
        )
    emit_audit_log(
        action="reservation.upserted",
        initiator=initiator,
        order_id=order_id,
        order_status=status,
        item_slug=order_meta.item_slug,
        scheduled_date=order_meta.scheduled_date,
        time_slot=order_meta.time_slot,
        rows=len(lines),
    )
    return LifecycleResult(order_id=order_id, status=status, outcome=LifecycleOutcome.UPSERTED, rows=len(lines))
