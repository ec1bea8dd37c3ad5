import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_order_backend, get_payment_gateway, get_session
from ..domain.errors import ConfigError, OrderBackendError, PersistenceError, SignatureInvalid
from ..domain.repositories import OrderBackend, PaymentGateway
from ..infrastructure.repositories import SqlAlchemyReservationRepository
from ..usecases import webhooks as webhook_usecase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payment")
async def payment_webhook(
    request: Request,
    session: AsyncSession = Depends(get_session),
    order_backend: OrderBackend = Depends(get_order_backend),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> Dict[str, Any]:
    raw_body = await request.body()
    headers = {key.lower(): value for key, value in request.headers.items()}
    try:
        event = webhook_usecase.verify_payment_event(gateway, raw_body=raw_body, headers=headers)
    except (SignatureInvalid, ConfigError) as exc:
        logger.warning("Payment webhook rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook failed.")

    res_repo = SqlAlchemyReservationRepository(session)
    try:
        # The order backend call stays outside the ledger transaction.
        result = await webhook_usecase.sync_order_with_payment(order_backend, event)
        async with session.begin():
            result = await webhook_usecase.apply_payment_to_ledger(res_repo, result)
    except (ConfigError, OrderBackendError, PersistenceError):
        logger.exception("Payment webhook processing failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook failed.")

    return {"received": True, "orderId": result.order_id}


@router.post("/orders")
async def order_webhook(
    request: Request,
    x_wc_webhook_signature: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    if not settings.woocommerce_webhook_secret:
        logger.error("Order webhook received but WC_WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook failed.")

    raw_body = await request.body()
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        async with session.begin():
            result = await webhook_usecase.handle_order_event(
                res_repo,
                secret=settings.woocommerce_webhook_secret,
                raw_body=raw_body,
                signature=x_wc_webhook_signature,
            )
    except SignatureInvalid as exc:
        logger.warning("Order webhook rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook failed.")
    except PersistenceError:
        logger.exception("Order webhook processing failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook failed.")

    return {"received": True, "outcome": result.outcome.value if result else None}
