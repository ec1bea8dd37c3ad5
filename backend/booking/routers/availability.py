from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_rule_store, get_session
from ..domain.errors import CatalogUnavailable, ConfigError, NotFound
from ..domain.repositories import RuleStore
from ..infrastructure.repositories import SqlAlchemyReservationRepository
from ..schemas import WeekAvailabilityRead
from ..usecases import availability as availability_usecase
from ..utils.time import parse_iso_date

router = APIRouter(prefix="", tags=["availability"])


@router.get("/availability", response_model=WeekAvailabilityRead)
async def get_availability(
    slug: str = Query(default="", description="Service or subscription slug"),
    week_start: str = Query(default="", description="Day 0 of the week (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
    rule_store: RuleStore = Depends(get_rule_store),
) -> WeekAvailabilityRead:
    if not slug or not week_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing slug or week_start.")
    start = parse_iso_date(week_start)
    if start is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid week_start.")

    res_repo = SqlAlchemyReservationRepository(session)
    try:
        week = await availability_usecase.get_week_availability(
            rule_store,
            res_repo,
            slug=slug,
            week_start=start,
        )
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown slug")
    except ConfigError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    except CatalogUnavailable:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load availability.")

    return WeekAvailabilityRead.from_domain(week)
