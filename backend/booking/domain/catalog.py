"""Bookable items as published by the CMS: weekly capacity rules and pack pricing."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models import ItemType
from ..utils.time import WEEKDAY_KEYS

logger = logging.getLogger(__name__)

_PRICE_RE = re.compile(r"(\d+(\.\d+)?)")


@dataclass(frozen=True)
class WeeklyRule:
    weekday: str
    slot: Optional[str]
    capacity: int


@dataclass(frozen=True)
class PricingTier:
    size: int
    price_label: str
    amount_minor: int

    @property
    def mode(self) -> str:
        return f"pack{self.size}"


@dataclass(frozen=True)
class BookableItem:
    slug: str
    item_type: ItemType
    rules: Tuple[WeeklyRule, ...] = ()
    pricing_tiers: Tuple[PricingTier, ...] = ()
    title: str = ""

    def rules_for(self, weekday: str) -> List[WeeklyRule]:
        return [rule for rule in self.rules if rule.weekday == weekday]

    def tier_for_mode(self, mode: str) -> Optional[PricingTier]:
        for tier in self.pricing_tiers:
            if tier.mode == mode:
                return tier
        return None


def normalize_slot(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def price_to_minor(value: Any) -> Optional[int]:
    """Convert '45', '45,50 €' or 45.5 into minor units; None when no amount is found."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = str(value)
    else:
        match = _PRICE_RE.search(str(value).replace(",", "."))
        if match is None:
            return None
        raw = match.group(1)
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        return None
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _decode(value: Any, *, what: str, slug: str) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Malformed %s JSON for item %s", what, slug)
            return None
    return value


def parse_weekly_rules(raw: Any, *, slug: str = "") -> Tuple[WeeklyRule, ...]:
    """Parse a ``{"mon": [{"slot": ..., "capacity": ...}], ...}`` structure.

    Missing or empty weekday keys mean the item is closed that day. A repeated
    (weekday, slot) pair keeps its first occurrence.
    """
    data = _decode(raw, what="availability rules", slug=slug)
    if not isinstance(data, Mapping):
        return ()

    rules: List[WeeklyRule] = []
    for weekday in WEEKDAY_KEYS:
        entries = data.get(weekday)
        if not isinstance(entries, list):
            continue
        seen: set[Optional[str]] = set()
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            slot = normalize_slot(entry.get("slot"))
            if slot in seen:
                logger.warning("Duplicate rule for %s %s slot=%r ignored", slug, weekday, slot)
                continue
            seen.add(slot)
            try:
                capacity = int(entry.get("capacity") or 0)
            except (TypeError, ValueError):
                capacity = 0
            rules.append(WeeklyRule(weekday=weekday, slot=slot, capacity=max(capacity, 0)))
    return tuple(rules)


def parse_pricing_tiers(raw: Any, *, slug: str = "") -> Tuple[PricingTier, ...]:
    """Read pack tiers from a structured list ``[{size, price}]`` or a ``{"3": price}`` object."""
    data = _decode(raw, what="pack prices", slug=slug)
    candidates: List[Tuple[Any, Any]] = []
    if isinstance(data, list):
        for item in data:
            if isinstance(item, Mapping):
                size = item.get("size") or item.get("pack") or item.get("quantity")
                price = item.get("price") or item.get("value") or ""
                candidates.append((size, price))
    elif isinstance(data, Mapping):
        for key, price in data.items():
            candidates.append((re.sub(r"\D+", "", str(key)), price))

    tiers: Dict[int, PricingTier] = {}
    for size_raw, price in candidates:
        try:
            size = int(size_raw)
        except (TypeError, ValueError):
            continue
        if size <= 0 or not price or size in tiers:
            continue
        amount_minor = price_to_minor(price)
        if not amount_minor:
            continue
        tiers[size] = PricingTier(size=size, price_label=str(price), amount_minor=amount_minor)
    return tuple(tiers[size] for size in sorted(tiers))
