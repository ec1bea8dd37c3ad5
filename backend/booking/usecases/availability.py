from datetime import date, timedelta

from ..domain.availability import WeekAvailability, compute_week
from ..domain.errors import NotFound
from ..domain.repositories import ReservationRepository, RuleStore


async def get_week_availability(
    rule_store: RuleStore,
    res_repo: ReservationRepository,
    *,
    slug: str,
    week_start: date,
) -> WeekAvailability:
    item = await rule_store.get_item(slug)
    if item is None:
        raise NotFound(f"unknown item slug: {slug}")
    booked = await res_repo.booked_between(item.slug, week_start, week_start + timedelta(days=6))
    return compute_week(item, week_start, booked)
