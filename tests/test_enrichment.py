from datetime import timedelta

from hotrank.models import BadgePosition, CatalogItem, FireBadge, ProductMetrics
from hotrank.services.enrichment import enrich, match_catalog_item

from conftest import CATALOG, T0


def _m(key, brand="Google"):
    return ProductMetrics(product_key=key, brand=brand, name=key, total_views=2, score=6, last_interaction_at=T0)


def test_exact_name_match_is_case_insensitive():
    assert match_catalog_item("pixel-8", CATALOG).id == "google-pixel-8"


def test_brand_name_slug_match():
    items = [CatalogItem(id="x1", brand="Dell", name="Latitude 5420", description="d")]
    assert match_catalog_item("dell-latitude-5420", items).id == "x1"


def test_catalog_id_match():
    items = [CatalogItem(id="SKU-77", brand="HP", name="EliteBook", description="d")]
    assert match_catalog_item("SKU-77", items).name == "EliteBook"


def test_fuzzy_containment_either_direction():
    assert match_catalog_item("iphone-13-refurb", CATALOG).brand == "Apple"
    items = [CatalogItem(id="z", brand="Apple", name="IPHONE-13-PRO-MAX", description="d")]
    assert match_catalog_item("iphone-13-pro", items).id == "z"


def test_earlier_strategy_wins():
    items = [
        CatalogItem(id="fuzzy", brand="Google", name="PIXEL-8-PRO", description="d"),
        CatalogItem(id="exact", brand="Google", name="pixel-8", description="d"),
    ]
    assert match_catalog_item("pixel-8", items).id == "exact"


def test_no_match_falls_back_to_stored_fields():
    e = enrich(_m("ghost-sku", brand="Acme"), CATALOG, None, T0)
    assert e.name == "ghost-sku"
    assert e.brand == "Acme"
    assert e.description is None
    assert e.hasFireBadge is False
    assert e.fireBadgePosition is None


def test_badge_fields():
    badge = FireBadge(
        product_key="pixel-8",
        position=BadgePosition.SECOND,
        active_from=T0,
        active_until=T0 + timedelta(hours=1),
    )
    e = enrich(_m("pixel-8"), CATALOG, badge, T0 + timedelta(minutes=15))
    assert e.name == "PIXEL-8"
    assert e.description.startswith("Pixel 8")
    assert e.minQty == 5
    assert e.hasFireBadge is True
    assert e.fireBadgePosition is BadgePosition.SECOND
    assert e.fireBadgeTimeRemaining == 45 * 60 * 1000

    late = enrich(_m("pixel-8"), CATALOG, badge, T0 + timedelta(hours=2))
    assert late.fireBadgeTimeRemaining == 0
