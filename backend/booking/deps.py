import os
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import async_session
from .domain.gateway import resolve_gateway_config
from .infrastructure.cms import WordPressRuleStore
from .infrastructure.payment_gateway import HostedCheckoutGateway
from .infrastructure.woocommerce import WooCommerceOrderBackend
from .utils.signatures import constant_time_compare


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def get_rule_store(settings: Settings = Depends(get_settings)) -> WordPressRuleStore:
    return WordPressRuleStore(settings.wordpress_site_url, timeout=settings.http_timeout_seconds)


def get_order_backend(settings: Settings = Depends(get_settings)) -> WooCommerceOrderBackend:
    return WooCommerceOrderBackend(
        settings.resolved_woocommerce_url(),
        settings.woocommerce_consumer_key,
        settings.woocommerce_consumer_secret,
        timeout=settings.http_timeout_seconds,
    )


def request_base_url(request: Request) -> str:
    origin = request.headers.get("origin")
    if origin:
        return origin
    forwarded_host = request.headers.get("x-forwarded-host")
    if forwarded_host:
        proto = request.headers.get("x-forwarded-proto") or "https"
        return f"{proto}://{forwarded_host}"
    return ""


def get_payment_gateway(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> HostedCheckoutGateway:
    # One client per request, built from the environment as it is now.
    base_url = request_base_url(request) or settings.app_base_url or str(request.base_url)
    config = resolve_gateway_config(os.environ, base_url)
    return HostedCheckoutGateway(config, timeout=settings.http_timeout_seconds)


async def require_cleanup_token(
    x_cleanup_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.order_cleanup_api_key
    if not expected or not constant_time_compare(x_cleanup_token or "", expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized.")
