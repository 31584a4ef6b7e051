import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from hotrank.models import CatalogItem, EnrichedEntry, FireBadge, ProductMetrics

_WS = re.compile(r"\s+")


def _composite_id(item: CatalogItem) -> str:
    return _WS.sub("-", f"{item.brand}-{item.name}".lower())


def match_catalog_item(product_key: str, catalog: Sequence[CatalogItem]) -> Optional[CatalogItem]:
    """Find the catalog record for a derived product key.

    The key is not a foreign key, so strategies are tried in order:
    exact name, ``brand-name`` slug, catalog id, then substring either way.
    """
    key = product_key.lower()

    for item in catalog:
        if item.name.lower() == key:
            return item
    for item in catalog:
        if _composite_id(item) == product_key:
            return item
    for item in catalog:
        if item.id == product_key:
            return item
    for item in catalog:
        name = item.name.lower()
        if name and (key in name or name in key):
            return item
    return None


def remaining_ms(until: datetime, now: datetime) -> int:
    return max(0, int((until - now).total_seconds() * 1000))


def time_remaining_ms(badge: FireBadge, now: datetime) -> int:
    return remaining_ms(badge.active_until, now)


def enrich(
    metrics: ProductMetrics,
    catalog: Sequence[CatalogItem],
    badge: Optional[FireBadge],
    now: datetime,
) -> EnrichedEntry:
    item = match_catalog_item(metrics.product_key, catalog)
    return EnrichedEntry(
        productId=metrics.product_key,
        brand=metrics.brand,
        name=item.name if item else metrics.name,
        description=item.description if item else None,
        grade=item.grade if item else None,
        minQty=item.min_qty if item else None,
        totalViews=metrics.total_views,
        totalClicks=metrics.total_clicks,
        totalSearches=metrics.total_searches,
        lastInteraction=metrics.last_interaction_at,
        trendingScore=metrics.score,
        hasFireBadge=badge is not None,
        fireBadgePosition=badge.position if badge else None,
        fireBadgeTimeRemaining=time_remaining_ms(badge, now) if badge else None,
    )


def enrich_all(metrics: Iterable[ProductMetrics], catalog, badges, now: datetime):
    return [enrich(m, catalog, badges.get(m.product_key), now) for m in metrics]


def refresh_badge_timers(
    entries: Sequence[EnrichedEntry],
    badge_until: Dict[str, datetime],
    now: datetime,
) -> List[EnrichedEntry]:
    """Copies of cached entries with badge countdowns taken against ``now``."""
    return [
        e.model_copy(update={"fireBadgeTimeRemaining": remaining_ms(badge_until[e.productId], now)})
        if e.productId in badge_until
        else e
        for e in entries
    ]
