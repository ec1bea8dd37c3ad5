from datetime import date

import pytest
from booking.domain.availability import DayState, SlotState
from booking.domain.catalog import BookableItem, WeeklyRule
from booking.domain.errors import NotFound
from booking.domain.orders import OrderLine, resolve_order_meta
from booking.models import ItemType
from booking.usecases.availability import get_week_availability
from booking.usecases.lifecycle import apply_order_status
from fakes import FakeLedger, FakeRuleStore, menage_item

MONDAY = date(2024, 1, 1)
META = resolve_order_meta(
    {"service_slug": "menage", "scheduled_date": MONDAY.isoformat(), "time_slot": "09:00-12:00"}
)


async def _book(ledger: FakeLedger, order_id: str) -> None:
    await apply_order_status(
        ledger,
        order_id=order_id,
        order_lines=[OrderLine(line_id="1", quantity=1)],
        new_status="processing",
        order_meta=META,
    )


@pytest.mark.asyncio
async def test_two_bookings_fill_the_monday_slot(ledger: FakeLedger) -> None:
    await _book(ledger, "101")
    await _book(ledger, "102")

    week = await get_week_availability(FakeRuleStore(menage_item()), ledger, slug="menage", week_start=MONDAY)

    monday = week.days[0]
    slot = monday.slots[0]
    assert (slot.booked, slot.remaining, slot.state) == (2, 0, SlotState.FULL)
    assert monday.state == DayState.FULL


@pytest.mark.asyncio
async def test_released_booking_frees_capacity(ledger: FakeLedger) -> None:
    await _book(ledger, "101")
    await _book(ledger, "102")
    await apply_order_status(ledger, order_id="102", order_lines=[], new_status="failed", order_meta=META)

    week = await get_week_availability(FakeRuleStore(menage_item()), ledger, slug="menage", week_start=MONDAY)

    slot = week.days[0].slots[0]
    assert (slot.booked, slot.remaining, slot.state) == (1, 1, SlotState.LIMITED)


@pytest.mark.asyncio
async def test_bookings_outside_the_week_are_not_counted(ledger: FakeLedger) -> None:
    await _book(ledger, "101")
    week = await get_week_availability(
        FakeRuleStore(menage_item()),
        ledger,
        slug="menage",
        week_start=date(2024, 1, 8),
    )
    assert week.days[0].slots[0].booked == 0


@pytest.mark.asyncio
async def test_unknown_slug_raises_not_found(ledger: FakeLedger) -> None:
    with pytest.raises(NotFound):
        await get_week_availability(FakeRuleStore(), ledger, slug="nope", week_start=MONDAY)


@pytest.mark.asyncio
async def test_timed_booking_consumes_whole_day_capacity(ledger: FakeLedger) -> None:
    item = BookableItem(
        slug="menage",
        item_type=ItemType.SERVICE,
        rules=(WeeklyRule(weekday="mon", slot=None, capacity=1),),
    )
    await _book(ledger, "101")

    week = await get_week_availability(FakeRuleStore(item), ledger, slug="menage", week_start=MONDAY)

    slot = week.days[0].slots[0]
    assert slot.slot is None
    assert (slot.booked, slot.remaining, slot.state) == (1, 0, SlotState.FULL)
