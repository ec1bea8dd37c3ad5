import logging
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..config import Settings, get_settings
from ..deps import get_order_backend, get_payment_gateway, get_rule_store, request_base_url
from ..domain.errors import (
    CatalogUnavailable,
    ConfigError,
    GatewayRejected,
    InvalidCheckoutRequest,
    OrderBackendError,
)
from ..domain.repositories import OrderBackend, PaymentGateway, RuleStore
from ..schemas import CheckoutCreate, CheckoutRead
from ..usecases import checkout as checkout_usecase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])

DEV_BASE_URL = "http://localhost:3000"


def _return_base_url(request: Request, settings: Settings) -> str:
    base = request_base_url(request) or settings.app_base_url
    if not base and not settings.is_production:
        return DEV_BASE_URL
    return base


@router.post("/create", response_model=CheckoutRead, response_model_exclude_none=True)
async def create_checkout(
    payload: CheckoutCreate,
    request: Request,
    settings: Settings = Depends(get_settings),
    order_backend: OrderBackend = Depends(get_order_backend),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    rule_store: RuleStore = Depends(get_rule_store),
) -> CheckoutRead:
    if not settings.payments_enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Payments are currently disabled.")

    try:
        result = await checkout_usecase.create_checkout(
            order_backend,
            gateway,
            rule_store,
            draft=payload.to_draft(),
            product_id=settings.default_product_id,
            return_base_url=_return_base_url(request, settings),
        )
    except InvalidCheckoutRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ConfigError as exc:
        logger.error("Checkout configuration error: %s", exc)
        code = status.HTTP_400_BAD_REQUEST if exc.caller_correctable else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(status_code=code, detail=str(exc))
    except GatewayRejected as exc:
        detail: Dict[str, Any] = {
            "error": "Payment provider authorization failed for this merchant.",
            "orderId": exc.order_id,
        }
        if settings.expose_debug:
            detail["details"] = exc.body
        raise HTTPException(status_code=exc.status_code or status.HTTP_403_FORBIDDEN, detail=detail)
    except (OrderBackendError, CatalogUnavailable, httpx.HTTPError) as exc:
        logger.exception("Create checkout failed")
        detail = {"error": "Failed to create checkout."}
        if settings.expose_debug:
            detail["details"] = {"message": str(exc), "name": type(exc).__name__}
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)

    return CheckoutRead.from_result(result, expose_debug=settings.expose_debug)
