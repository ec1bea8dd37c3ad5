from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import BigInteger, Date, DateTime, Integer, String

# SQLite only autoincrements INTEGER primary keys.
_PK = BigInteger().with_variant(Integer, "sqlite")

NO_LINE_KEY = "-"


class Base(DeclarativeBase):
    pass


class ItemType(StrEnum):
    SERVICE = "service"
    SUBSCRIPTION = "subscription"


class ReservationStatus(StrEnum):
    ACTIVE = "active"
    RELEASED = "released"


def line_key_for(order_line_id: Optional[str]) -> str:
    return NO_LINE_KEY if order_line_id is None else order_line_id


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="chk_res_quantity"),
        UniqueConstraint("order_id", "line_key", name="uq_res_order_line"),
        Index("idx_res_lookup", "item_slug", "scheduled_date", "time_slot", "status"),
        Index("idx_res_order", "order_id"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_line_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    line_key: Mapped[str] = mapped_column(String(64), nullable=False)
    item_type: Mapped[ItemType] = mapped_column(
        Enum(
            ItemType,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
    )
    item_slug: Mapped[str] = mapped_column(String(191), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(
            ReservationStatus,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=ReservationStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
