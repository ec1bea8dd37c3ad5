from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..domain.errors import ConfigError, OrderBackendError
from ..domain.orders import OrderSnapshot, normalize_lines, normalize_order_id, resolve_order_meta
from ..domain.repositories import OrderBackend
from ..utils.time import parse_timestamp

logger = logging.getLogger(__name__)


def meta_fields(order: Mapping[str, Any]) -> Dict[str, Any]:
    meta = order.get("meta_data")
    if not isinstance(meta, list):
        return {}
    fields: Dict[str, Any] = {}
    for entry in meta:
        if isinstance(entry, Mapping) and entry.get("key"):
            fields[str(entry["key"])] = entry.get("value")
    return fields


def parse_order(order: Mapping[str, Any]) -> OrderSnapshot:
    order_id = normalize_order_id(order.get("id"))
    if order_id is None:
        raise OrderBackendError("order payload has no id", body=dict(order))
    fields = meta_fields(order)
    lines = order.get("line_items") if isinstance(order.get("line_items"), list) else []
    return OrderSnapshot(
        order_id=order_id,
        status=str(order.get("status") or ""),
        lines=normalize_lines([line for line in lines if isinstance(line, Mapping)]),
        meta=resolve_order_meta(fields),
        meta_fields=fields,
        created_at=parse_timestamp(order.get("date_created_gmt") or order.get("date_created")),
    )


class WooCommerceOrderBackend(OrderBackend):
    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self.base_url:
            raise ConfigError("WooCommerce REST base URL is not configured.")
        if not self.consumer_key or not self.consumer_secret:
            raise ConfigError("Missing WooCommerce API credentials.")
        async with httpx.AsyncClient(
            timeout=self.timeout,
            auth=(self.consumer_key, self.consumer_secret),
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(method, f"{self.base_url}{path}", **kwargs)
            except httpx.HTTPError as exc:
                raise OrderBackendError(f"WooCommerce request failed: {exc}") from exc
        if response.status_code >= 400:
            logger.error("WooCommerce API error: %s %s %s", method, path, response.status_code)
            raise OrderBackendError(
                f"WooCommerce API error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

    async def create_order(self, payload: Mapping[str, Any]) -> OrderSnapshot:
        return parse_order(await self._request("POST", "/orders", json=dict(payload)))

    async def update_order(self, order_id: str, payload: Mapping[str, Any]) -> OrderSnapshot:
        return parse_order(await self._request("PUT", f"/orders/{order_id}", json=dict(payload)))

    async def get_order(self, order_id: str) -> OrderSnapshot:
        if not order_id:
            raise OrderBackendError("Missing order ID.")
        return parse_order(await self._request("GET", f"/orders/{order_id}"))

    async def list_orders(self, params: Mapping[str, Any]) -> List[OrderSnapshot]:
        query = {key: str(value) for key, value in params.items() if value not in (None, "")}
        body = await self._request("GET", "/orders", params=query)
        if not isinstance(body, list):
            return []
        return [parse_order(order) for order in body if isinstance(order, Mapping)]

    async def delete_order(self, order_id: str, *, force: bool = True) -> None:
        if not order_id:
            raise OrderBackendError("Missing order ID.")
        await self._request("DELETE", f"/orders/{order_id}", params={"force": "true" if force else "false"})
