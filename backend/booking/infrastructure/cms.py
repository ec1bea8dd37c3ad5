from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

import httpx

from ..domain.catalog import BookableItem, parse_pricing_tiers, parse_weekly_rules
from ..domain.errors import CatalogUnavailable, ConfigError
from ..domain.repositories import RuleStore
from ..models import ItemType

logger = logging.getLogger(__name__)

RULES_META_KEY = "cbi_availability_rules"
PACK_PRICES_META_KEY = "cbi_pack_prices"

_COLLECTIONS = (
    (ItemType.SERVICE, "services"),
    (ItemType.SUBSCRIPTION, "subscriptions"),
)


def _clean_html(value: str) -> str:
    return re.sub(r"<[^>]+>", "", value)


def item_from_post(post: Mapping[str, Any], item_type: ItemType) -> BookableItem:
    """Map a CMS post onto a typed item. Rules and pack tiers are parsed once, here."""
    slug = str(post.get("slug") or "")
    meta = post.get("meta") if isinstance(post.get("meta"), Mapping) else {}
    title = post.get("title")
    rendered = title.get("rendered", "") if isinstance(title, Mapping) else str(title or "")
    return BookableItem(
        slug=slug,
        item_type=item_type,
        rules=parse_weekly_rules(meta.get(RULES_META_KEY), slug=slug),
        pricing_tiers=parse_pricing_tiers(meta.get(PACK_PRICES_META_KEY), slug=slug),
        title=_clean_html(str(rendered)).strip(),
    )


class WordPressRuleStore(RuleStore):
    """Reads services and subscriptions from the WordPress REST API."""

    def __init__(self, site_url: str, *, timeout: float = 15.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.site_url = site_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _fetch(self, client: httpx.AsyncClient, collection: str, slug: str) -> Optional[Mapping[str, Any]]:
        url = f"{self.site_url}/wp-json/wp/v2/{collection}"
        try:
            response = await client.get(url, params={"slug": slug, "per_page": 1, "context": "view"})
        except httpx.HTTPError as exc:
            raise CatalogUnavailable(f"CMS request failed: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.error("WordPress API error: %s %s", response.status_code, url)
            raise CatalogUnavailable(f"CMS responded with {response.status_code}")
        items = response.json()
        if isinstance(items, list) and items:
            return items[0]
        return None

    async def get_item(self, slug: str) -> BookableItem | None:
        if not self.site_url:
            raise ConfigError("WordPress site URL not configured.")
        if self._client is not None:
            return await self._lookup(self._client, slug)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._lookup(client, slug)

    async def _lookup(self, client: httpx.AsyncClient, slug: str) -> BookableItem | None:
        for item_type, collection in _COLLECTIONS:
            post = await self._fetch(client, collection, slug)
            if post is not None:
                return item_from_post(post, item_type)
        return None
