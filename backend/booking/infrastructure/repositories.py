from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.availability import BookedKey
from ..domain.errors import PersistenceError
from ..domain.repositories import ReservationRepository
from ..models import ItemType, Reservation, ReservationStatus, line_key_for
from ..utils.time import utc_now_naive

_UPDATABLE = ("order_line_id", "item_type", "item_slug", "scheduled_date", "time_slot", "quantity", "status", "updated_at")


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _upsert_statement(self, values: Dict[str, Any]) -> Any:
        dialect = self.session.get_bind().dialect.name
        if dialect == "mysql":
            stmt = mysql_insert(Reservation).values(**values)
            return stmt.on_duplicate_key_update({col: stmt.inserted[col] for col in _UPDATABLE})
        if dialect == "postgresql":
            stmt = pg_insert(Reservation).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite_insert(Reservation).values(**values)
        else:
            raise PersistenceError(f"unsupported ledger dialect: {dialect}")
        return stmt.on_conflict_do_update(
            index_elements=["order_id", "line_key"],
            set_={col: stmt.excluded[col] for col in _UPDATABLE},
        )

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
    ) -> None:
        """Insert-or-update keyed on (order_id, line_key) in a single statement."""
        now = utc_now_naive()
        values: Dict[str, Any] = {
            "order_id": order_id,
            "order_line_id": order_line_id,
            "line_key": line_key_for(order_line_id),
            "item_type": item_type,
            "item_slug": item_slug,
            "scheduled_date": scheduled_date,
            "time_slot": time_slot,
            "quantity": quantity,
            "status": ReservationStatus.ACTIVE,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.session.execute(self._upsert_statement(values))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to upsert reservation for order {order_id}") from exc

    async def release_order(self, order_id: str) -> int:
        stmt = (
            update(Reservation)
            .where(Reservation.order_id == order_id, Reservation.status != ReservationStatus.RELEASED)
            .values(status=ReservationStatus.RELEASED, updated_at=utc_now_naive())
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to release reservations for order {order_id}") from exc
        return int(result.rowcount or 0)

    async def booked_between(self, item_slug: str, start: date, end: date) -> dict[BookedKey, int]:
        stmt = (
            select(
                Reservation.scheduled_date,
                Reservation.time_slot,
                func.coalesce(func.sum(Reservation.quantity), 0).label("booked"),
            )
            .where(
                Reservation.item_slug == item_slug,
                Reservation.scheduled_date >= start,
                Reservation.scheduled_date <= end,
                Reservation.status == ReservationStatus.ACTIVE,
            )
            .group_by(Reservation.scheduled_date, Reservation.time_slot)
        )
        rows = await self.session.execute(stmt)
        return {(day, slot): int(booked) for day, slot, booked in rows.all()}

    async def list_for_order(self, order_id: str) -> List[Reservation]:
        stmt = select(Reservation).where(Reservation.order_id == order_id).order_by(Reservation.id)
        return list((await self.session.scalars(stmt)).all())
