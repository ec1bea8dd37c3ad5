from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import List, Mapping, Optional, Sequence, Tuple

from ..utils.time import week_dates, weekday_key
from .catalog import BookableItem

BookedKey = Tuple[date, Optional[str]]


class SlotState(StrEnum):
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"


class DayState(StrEnum):
    OFF = "off"
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"


@dataclass(frozen=True)
class SlotAvailability:
    slot: Optional[str]
    capacity: int
    booked: int
    remaining: int
    state: SlotState


@dataclass(frozen=True)
class DayAvailability:
    date: date
    slots: Tuple[SlotAvailability, ...]
    state: DayState


@dataclass(frozen=True)
class WeekAvailability:
    item: BookableItem
    week_start: date
    days: Tuple[DayAvailability, ...]


def slot_state(capacity: int, remaining: int) -> SlotState:
    if capacity <= 0 or remaining <= 0:
        return SlotState.FULL
    if remaining < capacity:
        return SlotState.LIMITED
    return SlotState.AVAILABLE


def day_state(slots: Sequence[SlotAvailability]) -> DayState:
    """
    Aggregate slot states. Both passes always run over every slot:
    any full slot downgrades the day to limited, then all-full makes it full.
    """
    if not slots:
        return DayState.OFF
    state = DayState.AVAILABLE
    for slot in slots:
        if slot.state == SlotState.FULL:
            state = DayState.LIMITED
    if all(slot.state == SlotState.FULL for slot in slots):
        state = DayState.FULL
    return state


def compute_week(
    item: BookableItem,
    week_start: date,
    booked: Mapping[BookedKey, int],
) -> WeekAvailability:
    """
    Pure calculator: `booked` maps (date, slot) to the summed quantity of active
    reservations. A whole-day rule (slot None) counts every booking on that date.
    """
    days: List[DayAvailability] = []
    for day in week_dates(week_start):
        slots: List[SlotAvailability] = []
        for rule in item.rules_for(weekday_key(day)):
            capacity = max(int(rule.capacity), 0)
            if rule.slot is None:
                count = sum(qty for (booked_day, _), qty in booked.items() if booked_day == day)
            else:
                count = booked.get((day, rule.slot), 0)
            count = max(int(count), 0)
            remaining = max(0, capacity - count)
            slots.append(
                SlotAvailability(
                    slot=rule.slot,
                    capacity=capacity,
                    booked=count,
                    remaining=remaining,
                    state=slot_state(capacity, remaining),
                )
            )
        days.append(DayAvailability(date=day, slots=tuple(slots), state=day_state(slots)))
    return WeekAvailability(item=item, week_start=week_start, days=tuple(days))
