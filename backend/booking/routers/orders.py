import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_order_backend, get_session, require_cleanup_token
from ..domain.errors import ConfigError, OrderBackendError
from ..domain.repositories import OrderBackend
from ..infrastructure.repositories import SqlAlchemyReservationRepository
from ..schemas import CleanupRead, CleanupRequest
from ..usecases import cleanup as cleanup_usecase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"], dependencies=[Depends(require_cleanup_token)])


@router.post("/cleanup", response_model=CleanupRead)
async def cleanup_orders(
    payload: Optional[CleanupRequest] = Body(default=None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    order_backend: OrderBackend = Depends(get_order_backend),
) -> CleanupRead:
    days = payload.days if payload and payload.days is not None else settings.order_cleanup_days
    statuses = payload.statuses if payload and payload.statuses else cleanup_usecase.DEFAULT_CLEANUP_STATUSES

    async def release_order(order_id: str) -> int:
        async with session.begin():
            return await SqlAlchemyReservationRepository(session).release_order(order_id)

    try:
        report = await cleanup_usecase.cleanup_stale_orders(
            order_backend,
            release_order,
            days=days,
            statuses=statuses,
        )
    except (OrderBackendError, ConfigError) as exc:
        logger.error("Order cleanup failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Cleanup failed.", "details": str(exc)},
        )
    return CleanupRead.from_report(report)
