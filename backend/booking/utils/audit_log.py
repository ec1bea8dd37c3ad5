from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "reservation.upserted",
    "reservation.released",
    "reservation.skipped",
]
AuditInitiator = Literal["payment_webhook", "order_webhook", "checkout", "cleanup", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return value


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    order_id: str,
    order_status: Optional[str],
    item_slug: Optional[str] = None,
    scheduled_date: Optional[date] = None,
    time_slot: Optional[str] = None,
    rows: Optional[int] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit one structured JSON line for a ledger change. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "order_id": order_id,
        "order_status": order_status,
        "item_slug": item_slug,
        "scheduled_date": _plain(scheduled_date),
        "time_slot": time_slot,
        "rows": rows,
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update({key: _plain(value) for key, value in extra.items()})

    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("failed to emit audit log") from exc
