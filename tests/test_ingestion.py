from hotrank.models import InteractionEvent, InteractionKind
from hotrank.services.ingestion import derive_product_key, normalize_event

from conftest import T0


def _event(**kw):
    return InteractionEvent(**kw)


def test_brand_prefix_is_stripped_case_insensitively():
    assert derive_product_key("GOOGLE-pixel-8", "Google") == "pixel-8"
    assert derive_product_key("pixel-8", "Google") == "pixel-8"
    assert derive_product_key("dell-dell-3340", "Dell") == "dell-3340"


def test_product_view_is_normalized():
    n = normalize_event(_event(type="product_view", productId="google-pixel-8", brand="Google"), T0)
    assert n is not None
    assert n.kind is InteractionKind.PRODUCT_VIEW
    assert n.product_key == "pixel-8"
    assert n.occurred_at == T0


def test_page_view_never_counts():
    assert normalize_event(_event(type="page_view", productId="google-pixel-8", brand="Google"), T0) is None


def test_sentinel_values_are_dropped():
    assert normalize_event(_event(type="product_view", productId="undefined-unknown"), T0) is None
    assert normalize_event(_event(type="result_click", productId="pixel-8", brand="undefined"), T0) is None
    assert normalize_event(_event(type="product_view", productId="apple-undefined"), T0) is None


def test_events_without_identity_are_dropped():
    assert normalize_event(_event(type="product_view"), T0) is None
    assert normalize_event(_event(type="search", searchTerm="pixel"), T0) is None
    assert normalize_event(_event(type="search", brand="Google"), T0) is None


def test_unknown_or_missing_type_is_dropped():
    assert normalize_event(_event(type="add_to_cart", productId="x"), T0) is None
    assert normalize_event(_event(productId="x"), T0) is None


def test_missing_brand_is_kept_for_the_accumulator():
    n = normalize_event(_event(type="search", productId="pixel-8", searchTerm="pixel"), T0)
    assert n is not None
    assert n.brand is None
    assert n.product_key == "pixel-8"
