from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..models import ItemType, Reservation
from .availability import BookedKey
from .catalog import BookableItem
from .gateway import CheckoutOrder, HostedSession, WebhookEvent
from .orders import OrderSnapshot


class ReservationRepository(Protocol):
    async def upsert_active(
        self,
        *,
        order_id: str,
        order_line_id: Optional[str],
        item_type: ItemType,
        item_slug: str,
        scheduled_date: date,
        time_slot: Optional[str],
        quantity: int,
    ) -> None: ...

    async def release_order(self, order_id: str) -> int: ...

    async def booked_between(self, item_slug: str, start: date, end: date) -> dict[BookedKey, int]: ...

    async def list_for_order(self, order_id: str) -> list[Reservation]: ...


class RuleStore(Protocol):
    async def get_item(self, slug: str) -> BookableItem | None: ...


class OrderBackend(Protocol):
    async def create_order(self, payload: Mapping[str, Any]) -> OrderSnapshot: ...

    async def update_order(self, order_id: str, payload: Mapping[str, Any]) -> OrderSnapshot: ...

    async def get_order(self, order_id: str) -> OrderSnapshot: ...

    async def list_orders(self, params: Mapping[str, Any]) -> Sequence[OrderSnapshot]: ...

    async def delete_order(self, order_id: str, *, force: bool = True) -> None: ...


class PaymentGateway(Protocol):
    def ensure_configured(self) -> None: ...

    async def create_hosted_session(
        self,
        order: CheckoutOrder,
        return_url: str,
        webhook_url: Optional[str] = None,
    ) -> HostedSession: ...

    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookEvent: ...
