from __future__ import annotations

import json
import logging
from email.utils import formatdate
from typing import Any, Dict, Mapping, Optional

import httpx

from ..domain.errors import ConfigError, GatewayRejected, SignatureInvalid
from ..domain.gateway import (
    CheckoutOrder,
    GatewayConfig,
    HostedSession,
    WebhookEvent,
    build_redirect_url,
    extract_merchant_reference,
    extract_payment_status,
)
from ..domain.orders import merchant_reference_for
from ..domain.repositories import PaymentGateway
from ..utils.signatures import hmac_sha256_base64, verify_hmac_sha256_base64

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json"
SIGNATURE_HEADER = "x-gcs-signature"
KEY_ID_HEADER = "x-gcs-keyid"


def authorization_header(config: GatewayConfig, *, method: str, path: str, date_header: str) -> str:
    string_to_hash = f"{method}\n{CONTENT_TYPE}\n{date_header}\n{path}\n"
    signature = hmac_sha256_base64(config.api_secret, string_to_hash.encode("utf-8"))
    return f"GCS v1HMAC:{config.api_key_id}:{signature}"


def hosted_checkout_body(order: CheckoutOrder, return_url: str, webhook_url: Optional[str]) -> Dict[str, Any]:
    contact: Dict[str, Any] = {"emailAddress": order.customer_email}
    if order.customer_phone:
        contact["phoneNumber"] = order.customer_phone
    body: Dict[str, Any] = {
        "order": {
            "amountOfMoney": {"currencyCode": order.currency, "amount": order.amount_minor},
            "customer": {
                "contactDetails": contact,
                "billingAddress": {"countryCode": order.country_code},
            },
            "references": {"merchantReference": merchant_reference_for(order.order_id)},
        },
        "hostedCheckoutSpecificInput": {"locale": order.locale, "returnUrl": return_url},
    }
    if webhook_url:
        body["feedbacks"] = {"webhooksUrls": [webhook_url]}
    return body


class HostedCheckoutGateway(PaymentGateway):
    """Hosted checkout client built from one resolved GatewayConfig."""

    def __init__(
        self,
        config: GatewayConfig,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timeout = timeout
        self.transport = transport

    def ensure_configured(self) -> None:
        if not self.config.has_api_credentials:
            raise ConfigError(f"Missing payment API credentials for {self.config.mode.value}.")
        if not self.config.merchant_id:
            raise ConfigError("Missing payment merchant id.", caller_correctable=True)

    async def create_hosted_session(
        self,
        order: CheckoutOrder,
        return_url: str,
        webhook_url: Optional[str] = None,
    ) -> HostedSession:
        self.ensure_configured()
        config = self.config

        path = f"/v2/{config.merchant_id}/hostedcheckouts"
        date_header = formatdate(usegmt=True)
        headers = {
            "Content-Type": CONTENT_TYPE,
            "Date": date_header,
            "Authorization": authorization_header(config, method="POST", path=path, date_header=date_header),
            "X-GCS-ServerMetaInfo": json.dumps({"integrator": config.integrator}),
        }
        payload = hosted_checkout_body(order, return_url, webhook_url or config.webhook_url or None)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(f"https://{config.api_host}{path}", content=json.dumps(payload), headers=headers)

        try:
            body = response.json()
        except ValueError:
            body = response.text
        if response.status_code >= 400:
            logger.warning("Hosted checkout rejected for order %s: %s", order.order_id, response.status_code)
            raise GatewayRejected(response.status_code, body)

        data = body if isinstance(body, Mapping) else {}
        partial = data.get("partialRedirectUrl")
        return HostedSession(
            redirect_url=build_redirect_url(data.get("redirectUrl"), partial),
            session_id=data.get("hostedCheckoutId"),
            partial_redirect_url=partial,
            raw=body,
        )

    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookEvent:
        config = self.config
        if not config.webhook_key_id or not config.webhook_secret:
            raise ConfigError("Missing webhook key configuration.")

        lowered = {key.lower(): value for key, value in headers.items()}
        key_id = lowered.get(KEY_ID_HEADER, "")
        signature = lowered.get(SIGNATURE_HEADER, "")
        if key_id != config.webhook_key_id:
            raise SignatureInvalid("unknown webhook key id")
        if not verify_hmac_sha256_base64(config.webhook_secret, raw_body, signature):
            raise SignatureInvalid("webhook signature mismatch")

        try:
            event = json.loads(raw_body)
        except ValueError as exc:
            raise SignatureInvalid("webhook body is not valid JSON") from exc
        if not isinstance(event, Mapping):
            raise SignatureInvalid("webhook body is not an object")

        return WebhookEvent(
            event_type=str(event.get("type") or "unknown"),
            payment_status=extract_payment_status(event) or "unknown",
            merchant_reference=extract_merchant_reference(event),
            raw=event,
        )
