"""Hosted-payment gateway contract: environment resolution, session and webhook shapes."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

DEFAULT_PREPROD_HOST = "payment.preprod.cawl-solutions.fr"
DEFAULT_PROD_HOST = "payment.cawl-solutions.fr"
DEFAULT_INTEGRATOR = "conciergerie-by-isa"
ENV_PREFIX = "PAYMENT"


class GatewayMode(StrEnum):
    PROD = "prod"
    PREPROD = "preprod"


@dataclass(frozen=True)
class GatewayConfig:
    mode: GatewayMode
    api_host: str
    merchant_id: str
    api_key_id: str
    api_secret: str
    webhook_url: str = ""
    webhook_key_id: str = ""
    webhook_secret: str = ""
    integrator: str = DEFAULT_INTEGRATOR

    @property
    def has_api_credentials(self) -> bool:
        return bool(self.api_key_id and self.api_secret)


@dataclass(frozen=True)
class CheckoutOrder:
    order_id: str
    amount_minor: int
    currency: str
    customer_email: str
    customer_phone: Optional[str] = None
    country_code: str = "FR"
    locale: str = "fr_FR"


@dataclass(frozen=True)
class HostedSession:
    redirect_url: Optional[str]
    session_id: Optional[str]
    partial_redirect_url: Optional[str] = None
    raw: Any = None


@dataclass(frozen=True)
class WebhookEvent:
    event_type: str
    payment_status: str
    merchant_reference: str
    raw: Mapping[str, Any]


_MODE_ALIASES = {
    "prod": GatewayMode.PROD,
    "production": GatewayMode.PROD,
    "live": GatewayMode.PROD,
    "preprod": GatewayMode.PREPROD,
    "test": GatewayMode.PREPROD,
    "sandbox": GatewayMode.PREPROD,
    "staging": GatewayMode.PREPROD,
}


def is_loopback_host(hostname: Optional[str]) -> bool:
    if not hostname:
        return True
    host = hostname.strip("[]").lower()
    if host in {"localhost", "0.0.0.0"} or host.endswith((".localhost", ".local")):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


def resolve_mode(env: Mapping[str, str], base_url: Optional[str] = None) -> GatewayMode:
    """Explicit PAYMENT_ENV override first, otherwise loopback-like hosts run against preprod."""
    override = (env.get(f"{ENV_PREFIX}_ENV") or "").strip().lower()
    if override in _MODE_ALIASES:
        return _MODE_ALIASES[override]
    hostname = urlsplit(base_url).hostname if base_url else None
    return GatewayMode.PREPROD if is_loopback_host(hostname) else GatewayMode.PROD


def read_scoped(env: Mapping[str, str], mode: GatewayMode, name: str) -> str:
    scoped = env.get(f"{ENV_PREFIX}_{mode.value.upper()}_{name}")
    if scoped:
        return scoped
    return env.get(f"{ENV_PREFIX}_{name}") or ""


def resolve_gateway_config(env: Mapping[str, str], base_url: Optional[str] = None) -> GatewayConfig:
    """Pure resolution of the gateway configuration for one request."""
    mode = resolve_mode(env, base_url)
    default_host = DEFAULT_PROD_HOST if mode == GatewayMode.PROD else DEFAULT_PREPROD_HOST
    return GatewayConfig(
        mode=mode,
        api_host=read_scoped(env, mode, "API_HOST") or default_host,
        merchant_id=read_scoped(env, mode, "MERCHANT_ID"),
        api_key_id=read_scoped(env, mode, "API_KEY_ID"),
        api_secret=read_scoped(env, mode, "API_SECRET"),
        webhook_url=read_scoped(env, mode, "WEBHOOK_URL"),
        webhook_key_id=read_scoped(env, mode, "WEBHOOKS_KEY_ID"),
        webhook_secret=read_scoped(env, mode, "WEBHOOKS_KEY_SECRET"),
        integrator=env.get(f"{ENV_PREFIX}_INTEGRATOR") or DEFAULT_INTEGRATOR,
    )


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def extract_merchant_reference(event: Mapping[str, Any]) -> str:
    for path in (
        ("payment", "references", "merchantReference"),
        ("payment", "paymentOutput", "references", "merchantReference"),
        ("merchantReference",),
    ):
        value = _dig(event, *path)
        if value:
            return str(value)
    return ""


def extract_payment_status(event: Mapping[str, Any]) -> str:
    for path in (("payment", "status"), ("payment", "statusOutput", "statusCode"), ("status",)):
        value = _dig(event, *path)
        if value:
            return str(value)
    return ""


def build_redirect_url(redirect_url: Optional[str], partial_redirect_url: Optional[str]) -> Optional[str]:
    if redirect_url:
        return redirect_url
    if not partial_redirect_url:
        return None
    return f"https://payment.{partial_redirect_url}"
