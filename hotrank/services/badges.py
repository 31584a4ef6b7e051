import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Set

from hotrank.models import (
    MISSING_SENTINEL,
    TOP_POSITIONS,
    UNKNOWN_BRAND,
    BadgePosition,
    FireBadge,
    ProductMetrics,
)

logger = logging.getLogger(__name__)

BADGE_DURATIONS: Dict[BadgePosition, timedelta] = {
    BadgePosition.FIRST: timedelta(hours=2),
    BadgePosition.SECOND: timedelta(hours=1),
    BadgePosition.THIRD: timedelta(minutes=30),
    BadgePosition.NEW: timedelta(hours=1),
}

NEW_ITEM_WINDOW = timedelta(hours=24)
TOP_K = len(TOP_POSITIONS)

_PLACEHOLDERS = {"", UNKNOWN_BRAND, MISSING_SENTINEL}


@dataclass
class BadgeReconciliation:
    active: Dict[str, FireBadge]
    top: List[ProductMetrics]
    changed: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)


def is_rankable(metrics: ProductMetrics) -> bool:
    return (metrics.brand or "") not in _PLACEHOLDERS and (metrics.name or "") not in _PLACEHOLDERS


def rank(all_metrics: Iterable[ProductMetrics]) -> List[ProductMetrics]:
    """Rankable metrics by score, highest first; sorted() is stable so ties keep store order."""
    return sorted((m for m in all_metrics if is_rankable(m)), key=lambda m: m.score, reverse=True)


def is_new_item(metrics: ProductMetrics, now: datetime) -> bool:
    return now - metrics.last_interaction_at <= NEW_ITEM_WINDOW


def _open_badge(product_key: str, position: BadgePosition, now: datetime) -> FireBadge:
    return FireBadge(
        product_key=product_key,
        position=position,
        active_from=now,
        active_until=now + BADGE_DURATIONS[position],
    )


def reconcile(
    all_metrics: Iterable[ProductMetrics],
    badges: Iterable[FireBadge],
    now: datetime,
) -> BadgeReconciliation:
    ranked = rank(all_metrics)
    top = ranked[:TOP_K]
    top_keys = {m.product_key for m in top}

    active: Dict[str, FireBadge] = {}
    changed: Set[str] = set()
    removed: Set[str] = set()

    for badge in badges:
        if not badge.is_active:
            continue
        if badge.active_until <= now:
            logger.info("[badges] Expired %s badge for %s", badge.position.value, badge.product_key)
            removed.add(badge.product_key)
            continue
        active[badge.product_key] = badge.model_copy()

    for metrics, position in zip(top, TOP_POSITIONS):
        key = metrics.product_key
        existing = active.get(key)
        if existing is None:
            active[key] = _open_badge(key, position, now)
            logger.info("[badges] New %s badge for %s", position.value, key)
        elif existing.position is not position:
            logger.info(
                "[badges] Moving %s badge %s -> %s",
                key,
                existing.position.value,
                position.value,
            )
            existing.position = position
            existing.active_from = now
            existing.active_until = now + BADGE_DURATIONS[position]
        else:
            continue
        changed.add(key)
        removed.discard(key)

    new_keys = {m.product_key for m in ranked if is_new_item(m, now) and m.product_key not in top_keys}

    for key in list(active):
        if key in top_keys:
            continue
        badge = active[key]
        if badge.position is BadgePosition.NEW and key in new_keys:
            continue
        logger.info("[badges] Revoking %s badge for %s", badge.position.value, key)
        del active[key]
        changed.discard(key)
        removed.add(key)

    for metrics in ranked:
        key = metrics.product_key
        if key not in new_keys or key in active:
            continue
        active[key] = _open_badge(key, BadgePosition.NEW, now)
        logger.info("[badges] New-item badge for %s", key)
        changed.add(key)
        removed.discard(key)

    return BadgeReconciliation(active=active, top=top, changed=changed, removed=removed)
