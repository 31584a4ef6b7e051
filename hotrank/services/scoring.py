import logging
import math
from datetime import datetime
from typing import Dict, Optional

from hotrank.models import (
    UNKNOWN_BRAND,
    InteractionKind,
    NormalizedInteraction,
    ProductMetrics,
)

logger = logging.getLogger(__name__)

VIEW_WEIGHT = 3.0
CLICK_WEIGHT = 5.0
SEARCH_WEIGHT = 1.5

DECAY_WINDOW_HOURS = 168.0
DECAY_FLOOR = 0.1

WEIGHTS = {
    "productView": VIEW_WEIGHT,
    "resultClick": CLICK_WEIGHT,
    "search": SEARCH_WEIGHT,
}


def raw_score(views: int, clicks: int, searches: int) -> float:
    return views * VIEW_WEIGHT + clicks * CLICK_WEIGHT + searches * SEARCH_WEIGHT


def decay_factor(last_interaction_at: datetime, now: datetime) -> float:
    hours = max(0.0, (now - last_interaction_at).total_seconds() / 3600.0)
    return max(DECAY_FLOOR, 1 - hours / DECAY_WINDOW_HOURS)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def compute_score(metrics: ProductMetrics, now: datetime) -> int:
    base = raw_score(metrics.total_views, metrics.total_clicks, metrics.total_searches)
    return _round_half_up(base * decay_factor(metrics.last_interaction_at, now))


def recompute(metrics: ProductMetrics, now: datetime) -> ProductMetrics:
    """Refresh decay from the stored last interaction, without a new event."""
    metrics.score = compute_score(metrics, now)
    return metrics


def record(existing: Optional[ProductMetrics], interaction: NormalizedInteraction) -> ProductMetrics:
    now = interaction.occurred_at
    metrics = existing
    if metrics is None:
        metrics = ProductMetrics(
            product_key=interaction.product_key,
            brand=interaction.brand or UNKNOWN_BRAND,
            name=interaction.product_key,
            last_interaction_at=now,
        )
        logger.info("[score] New product metrics for %s (brand %s)", metrics.product_key, metrics.brand)

    if metrics.brand == UNKNOWN_BRAND and interaction.brand and interaction.brand != UNKNOWN_BRAND:
        logger.info("[score] Brand for %s upgraded to %s", metrics.product_key, interaction.brand)
        metrics.brand = interaction.brand

    if interaction.kind is InteractionKind.PRODUCT_VIEW:
        metrics.total_views += 1
    elif interaction.kind is InteractionKind.RESULT_CLICK:
        metrics.total_clicks += 1
    elif interaction.kind is InteractionKind.SEARCH:
        metrics.total_searches += 1

    metrics.last_interaction_at = now
    metrics.score = compute_score(metrics, now)
    logger.debug(
        "[score] %s -> %d (views=%d clicks=%d searches=%d)",
        metrics.product_key,
        metrics.score,
        metrics.total_views,
        metrics.total_clicks,
        metrics.total_searches,
    )
    return metrics


def score_breakdown(views: int, clicks: int, searches: int) -> Dict[str, str]:
    return {
        "views": f"{views} × {VIEW_WEIGHT} = {views * VIEW_WEIGHT}",
        "clicks": f"{clicks} × {CLICK_WEIGHT} = {clicks * CLICK_WEIGHT}",
        "searches": f"{searches} × {SEARCH_WEIGHT} = {searches * SEARCH_WEIGHT}",
        "total": f"{raw_score(views, clicks, searches)}",
    }
