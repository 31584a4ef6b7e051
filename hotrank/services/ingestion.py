import logging
from datetime import datetime
from typing import Optional

from hotrank.models import (
    MISSING_SENTINEL,
    InteractionEvent,
    InteractionKind,
    NormalizedInteraction,
)

logger = logging.getLogger(__name__)

SCORED_KINDS = {
    InteractionKind.PRODUCT_VIEW,
    InteractionKind.RESULT_CLICK,
    InteractionKind.SEARCH,
}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def derive_product_key(product_id: str, brand: Optional[str]) -> str:
    """``dell-latitude-5420`` with brand ``Dell`` becomes ``latitude-5420``."""
    if brand:
        prefix = f"{brand}-".lower()
        if product_id.lower().startswith(prefix):
            return product_id[len(prefix):]
    return product_id


def normalize_event(event: InteractionEvent, now: datetime) -> Optional[NormalizedInteraction]:
    """Turn a tracking beacon into a scoreable interaction, or ``None``.

    Nothing here raises: partial and poisoned events are normal traffic
    and are dropped with a log line.
    """
    product_id = _clean(event.productId)
    brand = _clean(event.brand)
    search_term = _clean(event.searchTerm)

    try:
        kind = InteractionKind(event.type)
    except ValueError:
        logger.info("[ingest] Skipping interaction with unknown type: %r", event.type)
        return None

    if kind is InteractionKind.PAGE_VIEW:
        logger.debug("[ingest] Skipping page view (no specific product)")
        return None

    if not product_id and not brand and not search_term:
        logger.info("[ingest] Skipping interaction without product info: %s", event.model_dump())
        return None

    if brand == MISSING_SENTINEL or (product_id and MISSING_SENTINEL in product_id):
        logger.info("[ingest] Skipping interaction with undefined values: %s", event.model_dump())
        return None

    if not product_id:
        logger.info("[ingest] Skipping %s without product id", kind.value)
        return None

    key = derive_product_key(product_id, brand)
    if not key:
        return None
    if key != product_id:
        logger.debug("[ingest] Extracted product key %s -> %s", product_id, key)

    return NormalizedInteraction(
        kind=kind,
        product_key=key,
        brand=brand,
        search_term=search_term,
        occurred_at=now,
    )
